import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Appointment, Doctor
from .....application.ports.doctor_repo import DoctorRepository, DoctorDto

logger = logging.getLogger(__name__)


class SqlDoctorRepository(DoctorRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, d: Doctor) -> DoctorDto:
        return DoctorDto(id=d.id, name=d.name, specialization=d.specialization)

    def get(self, doctor_id: int) -> Optional[DoctorDto]:
        d = self.session.exec(select(Doctor).where(Doctor.id == doctor_id)).first()
        return self._to_dto(d) if d else None

    def list_all(self) -> List[DoctorDto]:
        rows = self.session.exec(select(Doctor).order_by(Doctor.name)).all()
        return [self._to_dto(d) for d in rows]

    def search(self, term: Optional[str], offset: int, limit: int) -> Tuple[List[DoctorDto], int]:
        query = select(Doctor)
        if term:
            query = query.where(or_(Doctor.name.ilike(f"%{term}%"), Doctor.specialization.ilike(f"%{term}%")))
        total = self.session.exec(select(func.count()).select_from(query.subquery())).one()
        rows = self.session.exec(query.order_by(Doctor.name).offset(offset).limit(limit)).all()
        return [self._to_dto(d) for d in rows], int(total)

    def name_taken(self, name_key: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Doctor.id).where(Doctor.name_key == name_key)
        if exclude_id is not None:
            query = query.where(Doctor.id != exclude_id)
        return self.session.exec(query).first() is not None

    def create(self, name: str, specialization: str, name_key: str) -> Optional[DoctorDto]:
        d = Doctor(name=name, specialization=specialization, name_key=name_key)
        try:
            self.session.add(d)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info(f"Doctor insert rejected by unique name: {name_key}")
            return None
        self.session.refresh(d)
        return self._to_dto(d)

    def update(self, doctor_id: int, name: str, specialization: str, name_key: str) -> bool:
        d = self.session.exec(select(Doctor).where(Doctor.id == doctor_id)).one()
        d.name = name
        d.specialization = specialization
        d.name_key = name_key
        try:
            self.session.add(d)
            self.session.commit()
            return True
        except IntegrityError:
            self.session.rollback()
            logger.info(f"Doctor update rejected by unique name: {name_key}")
            return False

    def delete(self, doctor_id: int) -> None:
        d = self.session.exec(select(Doctor).where(Doctor.id == doctor_id)).first()
        if not d:
            return
        self.session.delete(d)
        self.session.commit()

    def has_appointments(self, doctor_id: int) -> bool:
        return self.session.exec(
            select(Appointment.id).where(Appointment.doctor_id == doctor_id)
        ).first() is not None
