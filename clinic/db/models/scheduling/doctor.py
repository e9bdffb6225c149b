# clinic/db/models/scheduling/doctor.py
from typing import Optional
from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from ....utils import utcnow

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=120)
    specialization: str = Field(max_length=80)
    # trimmed, lower-cased name; backs the case-insensitive uniqueness rule
    name_key: str = Field(max_length=120, unique=True, index=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow, sa_type=DateTime)
