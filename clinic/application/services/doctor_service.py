from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from ..ports.common import PagedResult
from ..ports.doctor_repo import DoctorRepository, DoctorDto
from .appointments_service import clamp_page
from ...core.config import settings
from ...exceptions import NotFoundError, ValidationError
from ...utils import is_blank, name_key

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "A doctor with this name already exists."


@dataclass
class DoctorService:
    repo: DoctorRepository

    def list_all(self) -> List[DoctorDto]:
        return self.repo.list_all()

    def search(self, page: Optional[int] = 1, page_size: Optional[int] = None, term: Optional[str] = None) -> PagedResult[DoctorDto]:
        page, page_size = clamp_page(page, page_size, settings.DOCTOR_PAGE_SIZE, settings.MAX_DOCTOR_PAGE_SIZE)
        term = None if is_blank(term) else term.strip()
        items, total = self.repo.search(term, offset=(page - 1) * page_size, limit=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    def get(self, doctor_id: int) -> DoctorDto:
        doctor = self.repo.get(doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found.")
        return doctor

    def create(self, name: Optional[str], specialization: Optional[str]) -> DoctorDto:
        name, specialization = self._validate(name, specialization)
        key = name_key(name)
        if self.repo.name_taken(key):
            raise ValidationError(DUPLICATE_NAME_MESSAGE)
        doctor = self.repo.create(name=name, specialization=specialization, name_key=key)
        if doctor is None:
            # lost a race on the unique name index
            raise ValidationError(DUPLICATE_NAME_MESSAGE)
        logger.info(f"Created doctor {doctor.id}")
        return doctor

    def update(self, doctor_id: int, name: Optional[str], specialization: Optional[str]) -> None:
        self.get(doctor_id)
        name, specialization = self._validate(name, specialization)
        key = name_key(name)
        if self.repo.name_taken(key, exclude_id=doctor_id):
            raise ValidationError(DUPLICATE_NAME_MESSAGE)
        if not self.repo.update(doctor_id, name=name, specialization=specialization, name_key=key):
            raise ValidationError(DUPLICATE_NAME_MESSAGE)

    def delete(self, doctor_id: int) -> None:
        self.get(doctor_id)
        if self.repo.has_appointments(doctor_id):
            raise ValidationError("Doctor has appointments. Remove appointments first.")
        self.repo.delete(doctor_id)
        logger.info(f"Deleted doctor {doctor_id}")

    @staticmethod
    def _validate(name: Optional[str], specialization: Optional[str]) -> Tuple[str, str]:
        if is_blank(name):
            raise ValidationError("Doctor name is required.")
        name = name.strip()
        if len(name) < 2 or len(name) > 120:
            raise ValidationError("Doctor name must be between 2 and 120 characters.")
        if is_blank(specialization):
            raise ValidationError("Specialization is required.")
        specialization = specialization.strip()
        if len(specialization) < 2 or len(specialization) > 80:
            raise ValidationError("Specialization must be between 2 and 80 characters.")
        return name, specialization
