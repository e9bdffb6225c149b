from dataclasses import dataclass
from typing import Optional
from datetime import datetime, timedelta
import logging

from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto
from ...exceptions import ConflictError

logger = logging.getLogger(__name__)

OVERLAP_MESSAGE = "Requested time overlaps an existing appointment. Please choose another slot."


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval intersection: [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


@dataclass
class BookingConflictGuard:
    repo: AppointmentsRepository

    def has_conflict(self, doctor_id: int, start: datetime, duration_minutes: int, exclude_appointment_id: Optional[int] = None) -> bool:
        """Advisory read-only check; the storage-level reserve is authoritative."""
        end = start + timedelta(minutes=duration_minutes)
        return bool(self.repo.find_overlapping(doctor_id, start, end, exclude_id=exclude_appointment_id))

    def reserve(self, doctor_id: int, patient_id: int, start: datetime, duration_minutes: int) -> AppointmentDto:
        appt = self.repo.insert_if_free(doctor_id, patient_id, start, duration_minutes)
        if appt is None:
            logger.info(f"Reserve rejected for doctor {doctor_id} at {start.isoformat()} ({duration_minutes}m)")
            raise ConflictError(OVERLAP_MESSAGE)
        return appt

    def reschedule(self, appointment_id: int, doctor_id: int, start: datetime, duration_minutes: int) -> None:
        if not self.repo.reschedule_if_free(appointment_id, doctor_id, start, duration_minutes):
            logger.info(f"Reschedule of appointment {appointment_id} rejected for doctor {doctor_id} at {start.isoformat()}")
            raise ConflictError(OVERLAP_MESSAGE)
