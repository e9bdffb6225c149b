import logging
from typing import Optional
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Patient
from .....application.ports.patient_repo import PatientRepository, PatientDto
from .....utils import utcnow

logger = logging.getLogger(__name__)


class SqlPatientRepository(PatientRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, p: Patient) -> PatientDto:
        return PatientDto(
            id=p.id,
            file_no=p.file_no,
            name=p.name or "",
            phone=p.phone or "",
            address=p.address or "",
            date_of_birth=p.date_of_birth,
            gender=p.gender or "",
        )

    def get(self, patient_id: int) -> Optional[PatientDto]:
        p = self.session.exec(select(Patient).where(Patient.id == patient_id)).first()
        return self._to_dto(p) if p else None

    def get_by_file_no(self, file_no: str) -> Optional[PatientDto]:
        p = self.session.exec(select(Patient).where(Patient.file_no == file_no)).first()
        return self._to_dto(p) if p else None

    def get_by_phone(self, phone: str) -> Optional[PatientDto]:
        p = self.session.exec(
            select(Patient).where(Patient.phone == phone).order_by(Patient.id)
        ).first()
        return self._to_dto(p) if p else None

    def create(self, file_no: str, name: str, phone: str, address: str, date_of_birth: date, gender: str) -> PatientDto:
        patient = Patient(
            file_no=file_no,
            name=name,
            phone=phone,
            address=address,
            date_of_birth=date_of_birth,
            gender=gender,
        )
        try:
            self.session.add(patient)
            self.session.commit()
            self.session.refresh(patient)
            return self._to_dto(patient)
        except IntegrityError:
            # Another booking created this file number first; use its row
            self.session.rollback()
            existing = self.get_by_file_no(file_no)
            if existing is None:
                raise
            logger.info(f"Patient {file_no} found after concurrent create")
            return existing

    def update_fields(self, patient_id: int, **fields) -> Optional[PatientDto]:
        p = self.session.exec(select(Patient).where(Patient.id == patient_id)).one()
        for key, value in fields.items():
            setattr(p, key, value)
        p.updated_at = utcnow()
        try:
            self.session.add(p)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.info(f"Patient {patient_id} update rejected by constraint: {e.orig}")
            return None
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(p)
        return self._to_dto(p)
