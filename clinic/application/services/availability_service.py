from dataclasses import dataclass, field
from typing import List
from datetime import datetime, date, timedelta

from ..ports.appointments_repo import AppointmentsRepository
from ..ports.doctor_repo import DoctorRepository
from .conflict_guard import overlaps
from ...core.config import settings
from ...exceptions import NotFoundError, ValidationError
from ...utils import is_blank, parse_hhmm


@dataclass
class SlotDto:
    start: datetime
    time: str

    @property
    def iso(self) -> str:
        return self.start.isoformat()


@dataclass
class AvailabilityDto:
    doctor_id: int
    date: date
    slot_minutes: int
    work_start: str
    work_end: str
    slots: List[SlotDto] = field(default_factory=list)


@dataclass
class AvailabilityService:
    doctors: DoctorRepository
    appointments: AppointmentsRepository

    def available_slots(self, doctor_id: int, date_str: str, slot_minutes: int = 30, work_start: str = "09:00", work_end: str = "17:00") -> AvailabilityDto:
        try:
            if is_blank(date_str):
                raise ValueError(date_str)
            target = datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
        except ValueError:
            raise ValidationError("Date must be in yyyy-MM-dd format.")

        if not self.doctors.get(doctor_id):
            raise NotFoundError("Doctor not found.")

        try:
            start_t = parse_hhmm(work_start)
        except (ValueError, AttributeError):
            raise ValidationError("workStart must be HH:mm format")
        try:
            end_t = parse_hhmm(work_end)
        except (ValueError, AttributeError):
            raise ValidationError("workEnd must be HH:mm format")
        if end_t <= start_t:
            raise ValidationError("workEnd must be > workStart")
        if slot_minutes <= 0 or slot_minutes > settings.MAX_SLOT_MINUTES:
            raise ValidationError(f"slotMinutes must be 1-{settings.MAX_SLOT_MINUTES}")

        day_start = datetime.combine(target, start_t)
        day_end = datetime.combine(target, end_t)
        step = timedelta(minutes=slot_minutes)

        booked = [(a.start_time, a.end_time) for a in self.appointments.find_overlapping(doctor_id, day_start, day_end)]

        slots = []
        slot_start = day_start
        while slot_start + step <= day_end:
            slot_end = slot_start + step
            if not any(overlaps(slot_start, slot_end, b_start, b_end) for b_start, b_end in booked):
                slots.append(SlotDto(start=slot_start, time=slot_start.strftime("%H:%M")))
            slot_start = slot_end

        return AvailabilityDto(
            doctor_id=doctor_id,
            date=target,
            slot_minutes=slot_minutes,
            work_start=start_t.strftime("%H:%M"),
            work_end=end_t.strftime("%H:%M"),
            slots=slots,
        )
