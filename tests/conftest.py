import os

# Settings are read at import time; pin the test environment first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-clinic")
os.environ.setdefault("ADMIN_USERNAME", "admin")
os.environ.setdefault("ADMIN_PASSWORD", "s3cret")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "100000")
os.environ.setdefault("SEED_DOCTORS", "false")

from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional

import pytest
from sqlmodel import Session

from clinic.application.ports.appointments_repo import AppointmentDto
from clinic.application.ports.doctor_repo import DoctorDto
from clinic.application.ports.patient_repo import PatientDto
from clinic.application.services.conflict_guard import overlaps
from clinic.database import build_engine, create_db_and_tables
from clinic.db.models import Doctor
from clinic.utils import name_key

NOW = datetime(2030, 1, 1, 8, 0)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current


class FakeDoctorRepo:
    def __init__(self, *doctors: DoctorDto):
        self.doctors = {d.id: d for d in doctors}

    def get(self, doctor_id: int) -> Optional[DoctorDto]:
        return self.doctors.get(doctor_id)


class FakePatientRepo:
    def __init__(self):
        self._id = 1
        self.patients = {}
        self.creates = 0

    def get(self, patient_id: int):
        return self.patients.get(patient_id)

    def get_by_file_no(self, file_no: str):
        return next((p for p in self.patients.values() if p.file_no == file_no), None)

    def get_by_phone(self, phone: str):
        return next((p for p in self.patients.values() if p.phone == phone), None)

    def create(self, file_no, name, phone, address, date_of_birth, gender):
        p = PatientDto(self._id, file_no, name, phone, address, date_of_birth, gender)
        self.patients[p.id] = p
        self._id += 1
        self.creates += 1
        return p

    def update_fields(self, patient_id: int, **fields):
        p = replace(self.patients[patient_id], **fields)
        self.patients[patient_id] = p
        return p


class FakeAppointmentsRepo:
    def __init__(self):
        self._id = 1
        self.appts: List[AppointmentDto] = []

    def add(self, doctor_id: int, start: datetime, duration: int, patient_id: int = 1) -> AppointmentDto:
        a = AppointmentDto(self._id, doctor_id, patient_id, start, duration, start + timedelta(minutes=duration), NOW)
        self.appts.append(a)
        self._id += 1
        return a

    def get_by_id(self, appointment_id: int):
        return next((a for a in self.appts if a.id == appointment_id), None)

    def find_overlapping(self, doctor_id, start, end, exclude_id=None):
        return sorted(
            (a for a in self.appts
             if a.doctor_id == doctor_id and a.id != exclude_id and overlaps(a.start_time, a.end_time, start, end)),
            key=lambda a: a.start_time,
        )

    def insert_if_free(self, doctor_id, patient_id, start, duration_minutes):
        end = start + timedelta(minutes=duration_minutes)
        if self.find_overlapping(doctor_id, start, end):
            return None
        return self.add(doctor_id, start, duration_minutes, patient_id)

    def reschedule_if_free(self, appointment_id, doctor_id, start, duration_minutes):
        end = start + timedelta(minutes=duration_minutes)
        if self.find_overlapping(doctor_id, start, end, exclude_id=appointment_id):
            return False
        a = self.get_by_id(appointment_id)
        self.appts[self.appts.index(a)] = replace(a, doctor_id=doctor_id, start_time=start, duration_minutes=duration_minutes, end_time=end)
        return True

    def delete(self, appointment_id: int):
        self.appts = [a for a in self.appts if a.id != appointment_id]


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, phone=None, appointment_id=None, doctor_id=None, success=True, details=None):
        self.entries.append({"action": action, "phone": phone, "appointment_id": appointment_id, "doctor_id": doctor_id, "success": success, "details": details})


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'clinic.db'}")
    create_db_and_tables(eng, seed=False)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


def add_doctor(engine, name: str = "Dr. Meera Rao", specialization: str = "ENT") -> int:
    with Session(engine) as s:
        d = Doctor(name=name, specialization=specialization, name_key=name_key(name))
        s.add(d)
        s.commit()
        s.refresh(d)
        return d.id


@pytest.fixture
def doctor_id(engine):
    return add_doctor(engine)
