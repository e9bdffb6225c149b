# clinic/db/models/scheduling/patient.py
from typing import Optional
from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import date

from ....utils import utcnow

class Patient(SQLModel, table=True):
    __tablename__ = "patients"
    id: Optional[int] = Field(default=None, primary_key=True)
    file_no: Optional[str] = Field(default=None, max_length=50, unique=True, index=True)
    name: str = Field(default="", max_length=120)
    phone: str = Field(default="", max_length=30, index=True)
    address: str = Field(default="", max_length=255)
    date_of_birth: Optional[date] = None
    gender: str = Field(default="", max_length=20)
    created_at: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime)
