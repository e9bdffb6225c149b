# clinic/schemas/appointments/appointment.py
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from ..common.common import CamelModel


class PatientIn(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    file_no: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None  # YYYY-MM-DD
    gender: Optional[str] = None


class BookingRequest(CamelModel):
    doctor_id: int = 0
    start_time: Optional[str] = None  # ISO-8601, local or with offset / Z
    duration_in_minutes: int = 0
    patient: Optional[PatientIn] = None


class BookingResponse(CamelModel):
    appointment_id: int


class AppointmentUpdateRequest(CamelModel):
    doctor_id: Optional[int] = None
    start_time: Optional[str] = None
    duration_in_minutes: Optional[int] = None
    patient: Optional[PatientIn] = None


class AppointmentResponse(CamelModel):
    id: int
    doctor_id: int
    patient_id: int
    start_time: datetime
    duration_in_minutes: int
    end_time: datetime


class AppointmentListItemResponse(CamelModel):
    id: int
    start_time: datetime
    duration_in_minutes: int
    doctor: str
    patient: str
    file_no: Optional[str] = None


class AppointmentPage(CamelModel):
    items: List[AppointmentListItemResponse] = Field(default_factory=list)
    total_count: int
    page: int
    page_size: int


class SlotResponse(CamelModel):
    iso: str
    time: str


class AvailabilityResponse(CamelModel):
    doctor_id: int
    date: str  # YYYY-MM-DD
    slot_minutes: int
    work_start: str  # HH:MM
    work_end: str
    available_slots: List[SlotResponse] = Field(default_factory=list)
