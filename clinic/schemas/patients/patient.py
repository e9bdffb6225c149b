# clinic/schemas/patients/patient.py
from typing import Optional

from ..common.common import CamelModel


class PatientSummary(CamelModel):
    id: int
    name: str
    phone: str
    file_no: Optional[str] = None
