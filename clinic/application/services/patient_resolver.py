from dataclasses import dataclass
from typing import Optional
from datetime import date
import logging

from ..ports.patient_repo import PatientRepository, PatientDto
from ...exceptions import ValidationError
from ...utils import is_blank, normalize_phone, parse_iso_date

logger = logging.getLogger(__name__)


@dataclass
class PatientHints:
    name: Optional[str] = None
    phone: Optional[str] = None
    file_no: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None


def parse_date_of_birth(value: Optional[str]) -> Optional[date]:
    if is_blank(value):
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError("Invalid date of birth format. Use ISO format like 1990-01-01.")


@dataclass
class PatientIdentityResolver:
    """Finds or creates the single patient a booking refers to.

    Lookup is by file number first, then by normalized phone. A matched
    record is only patched where its stored value is blank; the first
    value written for a field always wins.
    """

    repo: PatientRepository

    def resolve(self, hints: PatientHints) -> PatientDto:
        if is_blank(hints.name):
            raise ValidationError("Patient name is required.")
        if is_blank(hints.phone):
            raise ValidationError("Patient phone is required.")
        phone = normalize_phone(hints.phone)
        if not phone:
            raise ValidationError("Patient phone must contain digits.")
        dob = parse_date_of_birth(hints.date_of_birth)

        patient = None
        if not is_blank(hints.file_no):
            patient = self.repo.get_by_file_no(hints.file_no.strip())
        if patient is None:
            patient = self.repo.get_by_phone(phone)

        if patient is None:
            return self._create(hints, phone, dob)
        return self._fill_missing(patient, hints, phone, dob)

    def _create(self, hints: PatientHints, phone: str, dob: Optional[date]) -> PatientDto:
        if is_blank(hints.file_no):
            raise ValidationError("Patient file number is required.")
        if is_blank(hints.address):
            raise ValidationError("Patient address is required.")
        if dob is None:
            raise ValidationError("Patient date of birth is required.")
        if is_blank(hints.gender):
            raise ValidationError("Patient gender is required.")
        patient = self.repo.create(
            file_no=hints.file_no.strip(),
            name=hints.name.strip(),
            phone=phone,
            address=hints.address.strip(),
            date_of_birth=dob,
            gender=hints.gender.strip(),
        )
        logger.info(f"Created patient {patient.id} (file {patient.file_no})")
        return patient

    def _fill_missing(self, patient: PatientDto, hints: PatientHints, phone: str, dob: Optional[date]) -> PatientDto:
        changes = {}
        if is_blank(patient.file_no) and not is_blank(hints.file_no):
            changes["file_no"] = hints.file_no.strip()
        if is_blank(patient.name):
            changes["name"] = hints.name.strip()
        if is_blank(patient.phone):
            changes["phone"] = phone
        if is_blank(patient.address) and not is_blank(hints.address):
            changes["address"] = hints.address.strip()
        if patient.date_of_birth is None and dob is not None:
            changes["date_of_birth"] = dob
        if is_blank(patient.gender) and not is_blank(hints.gender):
            changes["gender"] = hints.gender.strip()
        if not changes:
            return patient
        logger.info(f"Filling {sorted(changes)} on patient {patient.id}")
        updated = self.repo.update_fields(patient.id, **changes)
        if updated is None:
            # file number claimed by another patient meanwhile; keep the stored record
            logger.info(f"Could not fill {sorted(changes)} on patient {patient.id}")
            return self.repo.get(patient.id)
        return updated
