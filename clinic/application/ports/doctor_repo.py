from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple


@dataclass
class DoctorDto:
    id: int
    name: str
    specialization: str


class DoctorRepository(Protocol):
    def get(self, doctor_id: int) -> Optional[DoctorDto]:
        ...

    def list_all(self) -> List[DoctorDto]:
        ...

    def search(self, term: Optional[str], offset: int, limit: int) -> Tuple[List[DoctorDto], int]:
        ...

    def name_taken(self, name_key: str, exclude_id: Optional[int] = None) -> bool:
        ...

    def create(self, name: str, specialization: str, name_key: str) -> Optional[DoctorDto]:
        """None when the unique name index rejects the row."""
        ...

    def update(self, doctor_id: int, name: str, specialization: str, name_key: str) -> bool:
        ...

    def delete(self, doctor_id: int) -> None:
        ...

    def has_appointments(self, doctor_id: int) -> bool:
        ...
