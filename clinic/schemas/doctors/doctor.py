# clinic/schemas/doctors/doctor.py
from pydantic import Field
from typing import List, Optional

from ..common.common import CamelModel


class DoctorIn(CamelModel):
    name: Optional[str] = None
    specialization: Optional[str] = None


class DoctorResponse(CamelModel):
    id: int
    name: str
    specialization: str


class DoctorCreated(CamelModel):
    id: int


class DoctorPage(CamelModel):
    items: List[DoctorResponse] = Field(default_factory=list)
    total_count: int
    page: int
    page_size: int
