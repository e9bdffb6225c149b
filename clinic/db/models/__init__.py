# Models package (re-export feature modules for stable imports)
from .scheduling.doctor import Doctor
from .scheduling.patient import Patient
from .scheduling.appointment import Appointment

__all__ = [
    "Doctor",
    "Patient",
    "Appointment",
]
