from datetime import datetime

import pytest

from clinic.application.ports.appointments_repo import SortDirection, SortKey
from clinic.application.ports.doctor_repo import DoctorDto
from clinic.application.services.appointments_service import AppointmentsService, clamp_page, parse_sort
from clinic.application.services.conflict_guard import BookingConflictGuard
from clinic.exceptions import ConflictError, NotFoundError, ValidationError
from clinic.schemas.appointments.appointment import AppointmentUpdateRequest, PatientIn

from conftest import FakeAppointmentsRepo, FakeDoctorRepo, FakePatientRepo, FixedClock, RecordingAudit


class ListingRepo(FakeAppointmentsRepo):
    def __init__(self):
        super().__init__()
        self.queries = []

    def list_page(self, query):
        self.queries.append(query)
        return [], 0


@pytest.fixture
def repo():
    return ListingRepo()


@pytest.fixture
def patients():
    p = FakePatientRepo()
    p.create(file_no="F-1", name="Asha Nair", phone="9845012345", address="12 MG Road", date_of_birth=None, gender="F")
    p.create(file_no="F-2", name="Ravi Shah", phone="9000000000", address="4 Hill St", date_of_birth=None, gender="M")
    return p


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def service(repo, patients, audit):
    doctors = FakeDoctorRepo(DoctorDto(1, "Dr. Meera Rao", "ENT"), DoctorDto(2, "Dr. Anil Verma", "Pediatrics"))
    return AppointmentsService(repo, doctors, patients, BookingConflictGuard(repo), FixedClock(), audit)


def test_page_size_is_clamped_and_page_floored(service, repo):
    result = service.list(page=0, page_size=500)
    assert (result.page, result.page_size) == (1, 200)
    assert repo.queries[-1].offset == 0


def test_default_page_size(service, repo):
    result = service.list(page=3)
    assert result.page_size == 20
    assert repo.queries[-1].offset == 40


@pytest.mark.parametrize("sort_by,sort_dir,expected", [
    (None, None, (SortKey.START_TIME, SortDirection.ASC)),
    ("doctor", "desc", (SortKey.DOCTOR, SortDirection.DESC)),
    ("Patient", "ASC", (SortKey.PATIENT, SortDirection.ASC)),
    ("start_time", "desc", (SortKey.START_TIME, SortDirection.DESC)),
    ("price", "desc", (SortKey.START_TIME, SortDirection.ASC)),
    ("doctor", "sideways", (SortKey.START_TIME, SortDirection.ASC)),
])
def test_parse_sort(sort_by, sort_dir, expected):
    assert parse_sort(sort_by, sort_dir) == expected


def test_clamp_page_negative_size_uses_default():
    assert clamp_page(-2, -5, 10, 100) == (1, 10)


def test_get_missing(service):
    with pytest.raises(NotFoundError):
        service.get(99)


def test_reschedule_into_free_slot(service, repo, audit):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30)
    updated = service.update(a.id, AppointmentUpdateRequest(start_time="2030-01-02T11:00:00", duration_in_minutes=45))
    assert updated.start_time == datetime(2030, 1, 2, 11, 0)
    assert updated.end_time == datetime(2030, 1, 2, 11, 45)
    assert audit.entries[-1]["action"] == "appointment.reschedule"


def test_extending_own_slot_does_not_conflict_with_itself(service, repo):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30)
    assert service.update(a.id, AppointmentUpdateRequest(duration_in_minutes=60)).duration_minutes == 60


def test_reschedule_onto_taken_slot(service, repo):
    repo.add(2, datetime(2030, 1, 2, 10, 0), 30)
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30)
    with pytest.raises(ConflictError):
        service.update(a.id, AppointmentUpdateRequest(doctor_id=2, start_time="2030-01-02T10:15:00"))
    assert repo.get_by_id(a.id).doctor_id == 1


def test_move_into_past_rejected(service, repo):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30)
    with pytest.raises(ValidationError) as exc:
        service.update(a.id, AppointmentUpdateRequest(start_time="2029-12-31T09:00:00"))
    assert exc.value.message == "Selected appointment time must be in the future."


def test_unknown_target_doctor(service, repo):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30)
    with pytest.raises(NotFoundError):
        service.update(a.id, AppointmentUpdateRequest(doctor_id=9))


def test_patient_details_overwritten_by_admin(service, repo, patients):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30, patient_id=1)
    service.update(a.id, AppointmentUpdateRequest(patient=PatientIn(name="Asha N. Menon", phone="+91 98450-99999")))
    p = patients.get(1)
    assert p.name == "Asha N. Menon"
    assert p.phone == "919845099999"
    assert p.address == "12 MG Road"


def test_file_number_taken_by_other_patient(service, repo, patients):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30, patient_id=1)
    with pytest.raises(ConflictError):
        service.update(a.id, AppointmentUpdateRequest(patient=PatientIn(file_no="F-2")))
    assert patients.get(1).file_no == "F-1"


def test_cancel(service, repo, audit):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30)
    service.cancel(a.id)
    assert repo.get_by_id(a.id) is None
    assert audit.entries[-1]["action"] == "appointment.cancel"
    with pytest.raises(NotFoundError):
        service.cancel(a.id)


def test_patient_write_rejected_leaves_appointment_in_place(service, repo, patients):
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30, patient_id=1)
    patients.update_fields = lambda patient_id, **fields: None
    with pytest.raises(ConflictError) as exc:
        service.update(a.id, AppointmentUpdateRequest(start_time="2030-01-02T11:00:00", patient=PatientIn(file_no="F-9")))
    assert exc.value.message == "Another patient already uses this file number."
    assert repo.get_by_id(a.id).start_time == datetime(2030, 1, 2, 9, 0)


def test_conflicting_reschedule_leaves_patient_untouched(service, repo, patients):
    repo.add(1, datetime(2030, 1, 2, 11, 0), 30, patient_id=2)
    a = repo.add(1, datetime(2030, 1, 2, 9, 0), 30, patient_id=1)
    with pytest.raises(ConflictError):
        service.update(a.id, AppointmentUpdateRequest(start_time="2030-01-02T11:15:00", patient=PatientIn(name="Renamed")))
    assert patients.get(1).name == "Asha Nair"
    assert repo.get_by_id(a.id).start_time == datetime(2030, 1, 2, 9, 0)
