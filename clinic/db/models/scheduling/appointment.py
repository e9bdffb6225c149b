# clinic/db/models/scheduling/appointment.py
from typing import Optional
from sqlalchemy import DateTime, Index, UniqueConstraint
from sqlmodel import SQLModel, Field
from pydantic import NaiveDatetime

from ....utils import utcnow

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("doctor_id", "start_time", name="uq_appointments_doctor_start"),
        Index("ix_appointments_doctor_end", "doctor_id", "end_time"),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    start_time: NaiveDatetime = Field(sa_type=DateTime)
    duration_minutes: int
    # start_time + duration_minutes, stored so overlap queries stay portable
    end_time: NaiveDatetime = Field(sa_type=DateTime)
    created_at: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime)
