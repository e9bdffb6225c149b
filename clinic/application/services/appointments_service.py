from dataclasses import dataclass
from typing import List, Optional, Tuple
from datetime import date
import logging

from ..ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentListItem,
    AppointmentQuery,
    SortDirection,
    SortKey,
)
from ..ports.audit_logger import AuditLogger
from ..ports.clock import Clock
from ..ports.common import PagedResult
from ..ports.doctor_repo import DoctorRepository
from ..ports.patient_repo import PatientRepository
from .conflict_guard import BookingConflictGuard, OVERLAP_MESSAGE
from .patient_resolver import parse_date_of_birth
from ...core.config import settings
from ...exceptions import ConflictError, NotFoundError, ValidationError
from ...schemas.appointments.appointment import AppointmentUpdateRequest
from ...utils import is_blank, normalize_phone, parse_local_datetime

logger = logging.getLogger(__name__)

FILE_NO_TAKEN_MESSAGE = "Another patient already uses this file number."


def parse_sort(sort_by: Optional[str], sort_dir: Optional[str]) -> Tuple[SortKey, SortDirection]:
    """Map free-form sort parameters onto the closed set; anything unknown sorts by start time ascending."""
    key = (sort_by or SortKey.START_TIME.value).strip().lower().replace("_", "")
    direction = (sort_dir or SortDirection.ASC.value).strip().lower()
    try:
        return SortKey(key), SortDirection(direction)
    except ValueError:
        return SortKey.START_TIME, SortDirection.ASC


def clamp_page(page: Optional[int], page_size: Optional[int], default_size: int, max_size: int) -> Tuple[int, int]:
    page = page if page and page > 0 else 1
    page_size = page_size if page_size and page_size > 0 else default_size
    return page, min(page_size, max_size)


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    doctors: DoctorRepository
    patients: PatientRepository
    guard: BookingConflictGuard
    clock: Clock
    audit: Optional[AuditLogger] = None

    def list(
        self,
        page: Optional[int] = 1,
        page_size: Optional[int] = None,
        doctor_id: Optional[int] = None,
        patient_name: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        sort_by: Optional[str] = None,
        sort_dir: Optional[str] = None,
    ) -> PagedResult[AppointmentListItem]:
        page, page_size = clamp_page(page, page_size, settings.APPOINTMENT_PAGE_SIZE, settings.MAX_APPOINTMENT_PAGE_SIZE)
        sort_key, sort_direction = parse_sort(sort_by, sort_dir)
        query = AppointmentQuery(
            page=page,
            page_size=page_size,
            doctor_id=doctor_id,
            patient_name=None if is_blank(patient_name) else patient_name.strip(),
            date_from=date_from,
            date_to=date_to,
            sort_key=sort_key,
            sort_direction=sort_direction,
        )
        items, total = self.repo.list_page(query)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    def list_all(self) -> List[AppointmentListItem]:
        return self.repo.list_all()

    def get(self, appointment_id: int) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFoundError("Appointment not found.")
        return appt

    def update(self, appointment_id: int, request: AppointmentUpdateRequest) -> AppointmentDto:
        appt = self.get(appointment_id)

        doctor_id = request.doctor_id if request.doctor_id is not None else appt.doctor_id
        if doctor_id != appt.doctor_id and not self.doctors.get(doctor_id):
            raise NotFoundError("Doctor not found.")

        start = appt.start_time
        if not is_blank(request.start_time):
            try:
                start = parse_local_datetime(request.start_time)
            except ValueError:
                raise ValidationError("Invalid StartTime format. Use ISO format like 2025-11-26T09:00:00Z or a valid local datetime.")
            if start != appt.start_time and start <= self.clock.now():
                raise ValidationError("Selected appointment time must be in the future.")

        duration = appt.duration_minutes
        if request.duration_in_minutes is not None:
            if request.duration_in_minutes <= 0:
                raise ValidationError("Duration must be greater than zero.")
            duration = request.duration_in_minutes

        patient_changes = self._patient_changes(appt.patient_id, request) if request.patient is not None else {}

        # Checks run before any write; the reschedule itself stays atomic.
        moved = (doctor_id, start, duration) != (appt.doctor_id, appt.start_time, appt.duration_minutes)
        if moved and self.guard.has_conflict(doctor_id, start, duration, exclude_appointment_id=appointment_id):
            raise ConflictError(OVERLAP_MESSAGE)

        if patient_changes and self.patients.update_fields(appt.patient_id, **patient_changes) is None:
            raise ConflictError(FILE_NO_TAKEN_MESSAGE)

        if moved:
            self.guard.reschedule(appointment_id, doctor_id, start, duration)
            logger.info(f"Rescheduled appointment {appointment_id} to doctor {doctor_id} at {start.isoformat()} ({duration}m)")
            if self.audit is not None:
                self.audit.log("appointment.reschedule", appointment_id=appointment_id, doctor_id=doctor_id)

        return self.get(appointment_id)

    def _patient_changes(self, patient_id: int, request: AppointmentUpdateRequest) -> dict:
        p = request.patient
        changes = {}
        for field_name in ("name", "address", "gender"):
            value = getattr(p, field_name)
            if not is_blank(value):
                changes[field_name] = value.strip()
        if not is_blank(p.phone):
            phone = normalize_phone(p.phone)
            if not phone:
                raise ValidationError("Patient phone must contain digits.")
            changes["phone"] = phone
        if not is_blank(p.date_of_birth):
            changes["date_of_birth"] = parse_date_of_birth(p.date_of_birth)
        if not is_blank(p.file_no):
            file_no = p.file_no.strip()
            holder = self.patients.get_by_file_no(file_no)
            if holder is not None and holder.id != patient_id:
                raise ConflictError(FILE_NO_TAKEN_MESSAGE)
            changes["file_no"] = file_no
        return changes

    def cancel(self, appointment_id: int) -> None:
        appt = self.get(appointment_id)
        self.repo.delete(appt.id)
        logger.info(f"Cancelled appointment {appt.id}")
        if self.audit is not None:
            self.audit.log("appointment.cancel", appointment_id=appt.id, doctor_id=appt.doctor_id)
