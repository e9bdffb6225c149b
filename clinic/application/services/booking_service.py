from dataclasses import dataclass
from typing import Optional
from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from ..ports.audit_logger import AuditLogger
from ..ports.clock import Clock
from ..ports.doctor_repo import DoctorRepository
from .conflict_guard import BookingConflictGuard, OVERLAP_MESSAGE
from .patient_resolver import PatientIdentityResolver, PatientHints, parse_date_of_birth
from ...exceptions import ErrorKind, SchedulingError, ValidationError, NotFoundError, ConflictError
from ...schemas.appointments.appointment import BookingRequest
from ...utils import is_blank, normalize_phone, parse_local_datetime

logger = logging.getLogger(__name__)

FATAL_MESSAGE = "Failed to book appointment"


@dataclass
class BookingResult:
    success: bool
    message: str = ""
    appointment_id: Optional[int] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def failed(cls, kind: ErrorKind, message: str) -> "BookingResult":
        return cls(success=False, message=message, error_kind=kind)


@dataclass
class BookingService:
    """Books a single appointment: validate, resolve doctor and patient, reserve.

    Steps run in order and the first failure ends the request. The patient
    write is committed on its own; a later conflict does not undo it.
    """

    doctors: DoctorRepository
    resolver: PatientIdentityResolver
    guard: BookingConflictGuard
    clock: Clock
    audit: Optional[AuditLogger] = None

    def book(self, request: Optional[BookingRequest]) -> BookingResult:
        phone = None
        if request is not None and request.patient is not None:
            phone = normalize_phone(request.patient.phone)
        try:
            result = self._book(request)
        except SchedulingError as e:
            logger.info(f"Booking rejected ({e.kind.value}): {e.message}")
            result = BookingResult.failed(e.kind, e.message)
        except SQLAlchemyError:
            logger.exception("Storage failure while booking appointment")
            result = BookingResult.failed(ErrorKind.FATAL, FATAL_MESSAGE)

        if self.audit is not None:
            self.audit.log(
                "appointment.book",
                phone=phone,
                appointment_id=result.appointment_id,
                doctor_id=request.doctor_id if request is not None else None,
                success=result.success,
                details={"error_kind": result.error_kind.value} if result.error_kind else None,
            )
        return result

    def _book(self, request: Optional[BookingRequest]) -> BookingResult:
        start = self._validate(request)

        doctor = self.doctors.get(request.doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found.")

        duration = request.duration_in_minutes
        # Fail fast before touching the patient table; reserve() re-checks atomically.
        if self.guard.has_conflict(doctor.id, start, duration):
            raise ConflictError(OVERLAP_MESSAGE)

        p = request.patient
        patient = self.resolver.resolve(PatientHints(
            name=p.name,
            phone=p.phone,
            file_no=p.file_no,
            address=p.address,
            date_of_birth=p.date_of_birth,
            gender=p.gender,
        ))

        appt = self.guard.reserve(doctor.id, patient.id, start, duration)
        logger.info(f"Booked appointment {appt.id} for doctor {doctor.id} at {start.isoformat()}")
        return BookingResult(success=True, message="Appointment booked", appointment_id=appt.id)

    def _validate(self, request: Optional[BookingRequest]) -> datetime:
        if request is None:
            raise ValidationError("Request is null.")
        if request.doctor_id <= 0:
            raise ValidationError("Invalid doctor id.")
        if request.duration_in_minutes <= 0:
            raise ValidationError("Duration must be greater than zero.")

        p = request.patient
        if p is None or is_blank(p.name):
            raise ValidationError("Patient name is required.")
        required = [
            (p.file_no, "Patient file number is required."),
            (p.phone, "Patient phone is required."),
            (p.address, "Patient address is required."),
            (p.date_of_birth, "Patient date of birth is required."),
            (p.gender, "Patient gender is required."),
        ]
        for value, message in required:
            if is_blank(value):
                raise ValidationError(message)

        parse_date_of_birth(p.date_of_birth)
        if not normalize_phone(p.phone):
            raise ValidationError("Patient phone must contain digits.")

        if is_blank(request.start_time):
            raise ValidationError("StartTime is required.")
        try:
            start = parse_local_datetime(request.start_time)
        except ValueError:
            raise ValidationError("Invalid StartTime format. Use ISO format like 2025-11-26T09:00:00Z or a valid local datetime.")

        if start <= self.clock.now():
            raise ValidationError("Selected appointment time must be in the future.")
        return start
