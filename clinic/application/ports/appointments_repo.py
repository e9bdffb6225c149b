from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Tuple
from datetime import datetime, date


@dataclass
class AppointmentDto:
    id: int
    doctor_id: int
    patient_id: int
    start_time: datetime
    duration_minutes: int
    end_time: datetime
    created_at: datetime


@dataclass
class AppointmentListItem:
    id: int
    start_time: datetime
    duration_minutes: int
    doctor: str
    patient: str
    file_no: Optional[str]


class SortKey(str, Enum):
    START_TIME = "starttime"
    DOCTOR = "doctor"
    PATIENT = "patient"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class AppointmentQuery:
    page: int = 1
    page_size: int = 20
    doctor_id: Optional[int] = None
    patient_name: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_key: SortKey = SortKey.START_TIME
    sort_direction: SortDirection = SortDirection.ASC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class AppointmentsRepository(Protocol):
    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def find_overlapping(self, doctor_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> List[AppointmentDto]:
        """Appointments of the doctor whose [start, end) intersects the given window, ordered by start."""
        ...

    def insert_if_free(self, doctor_id: int, patient_id: int, start: datetime, duration_minutes: int) -> Optional[AppointmentDto]:
        """Atomically insert unless an overlapping appointment exists; None on conflict."""
        ...

    def reschedule_if_free(self, appointment_id: int, doctor_id: int, start: datetime, duration_minutes: int) -> bool:
        """Atomically move the appointment unless it would overlap another; False on conflict."""
        ...

    def delete(self, appointment_id: int) -> None:
        ...

    def list_page(self, query: AppointmentQuery) -> Tuple[List[AppointmentListItem], int]:
        ...

    def list_all(self) -> List[AppointmentListItem]:
        ...
