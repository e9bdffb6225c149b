from dataclasses import dataclass
from typing import Optional, Protocol
from datetime import date


@dataclass
class PatientDto:
    id: int
    file_no: Optional[str]
    name: str
    phone: str
    address: str
    date_of_birth: Optional[date]
    gender: str


class PatientRepository(Protocol):
    def get(self, patient_id: int) -> Optional[PatientDto]:
        ...

    def get_by_file_no(self, file_no: str) -> Optional[PatientDto]:
        ...

    def get_by_phone(self, phone: str) -> Optional[PatientDto]:
        ...

    def create(self, file_no: str, name: str, phone: str, address: str, date_of_birth: date, gender: str) -> PatientDto:
        """Insert a patient; when another writer took the file number first, return that row."""
        ...

    def update_fields(self, patient_id: int, **fields) -> Optional[PatientDto]:
        """Returns None when a unique column (file number) is already taken."""
        ...
