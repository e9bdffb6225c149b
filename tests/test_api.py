import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from clinic.database import get_session
from clinic.main import app
from clinic.routers.deps import get_clock
from clinic.utils import create_jwt_token

from conftest import add_doctor


@pytest.fixture
def client(engine, clock):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_jwt_token({"sub": "admin", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


def _booking(doctor_id, start="2030-01-02T09:00:00", phone="9845012345", file_no="F-100"):
    return {
        "doctorId": doctor_id,
        "startTime": start,
        "durationInMinutes": 30,
        "patient": {
            "name": "Asha Nair",
            "phone": phone,
            "fileNo": file_no,
            "address": "12 MG Road",
            "dateOfBirth": "1990-01-01",
            "gender": "F",
        },
    }


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_book_then_slot_disappears(client, doctor_id):
    r = client.post("/api/appointments", json=_booking(doctor_id))
    assert r.status_code == 201
    assert r.json()["appointmentId"] > 0

    r = client.get(f"/api/doctors/{doctor_id}/availabletimes", params={"date": "2030-01-02"})
    assert r.status_code == 200
    body = r.json()
    times = [s["time"] for s in body["availableSlots"]]
    assert "09:00" not in times
    assert len(times) == 15
    assert body["slotMinutes"] == 30


def test_double_booking_is_rejected(client, doctor_id):
    assert client.post("/api/appointments", json=_booking(doctor_id)).status_code == 201
    r = client.post("/api/appointments", json=_booking(doctor_id, start="2030-01-02T09:15:00", file_no="F-101", phone="9000000001"))
    assert r.status_code == 400
    assert r.json()["error"] == "Requested time overlaps an existing appointment. Please choose another slot."


@pytest.mark.parametrize("phone,message", [
    ("", "Phone number is required."),
    ("98450-12345", "Phone number must contain digits only (0-9)."),
])
def test_booking_phone_must_be_digits(client, doctor_id, phone, message):
    r = client.post("/api/appointments", json=_booking(doctor_id, phone=phone))
    assert r.status_code == 400
    assert r.json()["error"] == message


def test_booking_in_past(client, doctor_id):
    r = client.post("/api/appointments", json=_booking(doctor_id, start="2029-06-01T09:00:00"))
    assert r.status_code == 400
    assert r.json()["error"] == "Selected appointment time must be in the future."


def test_availability_bad_date(client, doctor_id):
    r = client.get(f"/api/doctors/{doctor_id}/availabletimes", params={"date": "01/02/2030"})
    assert r.status_code == 400
    assert r.json()["error"] == "Date must be in yyyy-MM-dd format."


def test_availability_unknown_doctor(client):
    r = client.get("/api/doctors/999/availabletimes", params={"date": "2030-01-02"})
    assert r.status_code == 404


def test_admin_routes_require_token(client):
    assert client.get("/api/appointments").status_code == 401
    r = client.get("/api/appointments", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    user_token = create_jwt_token({"sub": "someone", "role": "patient"})
    r = client.get("/api/appointments", headers={"Authorization": f"Bearer {user_token}"})
    assert r.status_code == 403


def test_login(client):
    r = client.post("/api/auth/login", json={"username": "Admin", "password": "s3cret"})
    assert r.status_code == 200
    token = r.json()["access_token"]
    assert client.get("/api/admin/appointments", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    r = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401


def test_admin_listing_clamps_page_size(client, doctor_id, admin_headers):
    client.post("/api/appointments", json=_booking(doctor_id))
    r = client.get("/api/appointments", params={"page": 0, "pageSize": 500}, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert (body["page"], body["pageSize"], body["totalCount"]) == (1, 200, 1)
    item = body["items"][0]
    assert (item["doctor"], item["patient"], item["fileNo"]) == ("Dr. Meera Rao", "Asha Nair", "F-100")


def test_admin_update_and_cancel(client, doctor_id, admin_headers):
    appt_id = client.post("/api/appointments", json=_booking(doctor_id)).json()["appointmentId"]

    r = client.put(f"/api/appointments/{appt_id}", json={"startTime": "2030-01-02T10:00:00", "durationInMinutes": 60}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["durationInMinutes"] == 60

    r = client.get("/api/patients/F-100", headers=admin_headers)
    assert r.json()["name"] == "Asha Nair"

    assert client.delete(f"/api/appointments/{appt_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/appointments/{appt_id}", headers=admin_headers).status_code == 404


def test_doctor_crud(client, engine, admin_headers):
    add_doctor(engine)
    r = client.post("/api/doctors", json={"name": "dr. meera  rao", "specialization": "ENT"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "A doctor with this name already exists."

    r = client.post("/api/doctors", json={"name": "Dr. Anil Verma", "specialization": "Pediatrics"}, headers=admin_headers)
    assert r.status_code == 201
    new_id = r.json()["id"]

    names = [d["name"] for d in client.get("/api/doctors").json()]
    assert names == ["Dr. Anil Verma", "Dr. Meera Rao"]

    r = client.get("/api/doctors/admin", params={"search": "pedia"}, headers=admin_headers)
    assert r.json()["totalCount"] == 1

    assert client.delete(f"/api/doctors/{new_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/doctors/{new_id}").status_code == 404


def test_malformed_booking_body_is_bad_request(client, doctor_id):
    body = _booking(doctor_id)
    body["startTime"] = 20300102
    r = client.post("/api/appointments", json=body)
    assert r.status_code == 400
    payload = r.json()
    assert payload["success"] is False
    assert payload["error"].startswith("Invalid startTime")


def test_unparseable_booking_json_is_bad_request(client):
    r = client.post("/api/appointments", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_other_routes_keep_default_validation_status(client, admin_headers):
    r = client.get("/api/appointments", params={"page": "abc"}, headers=admin_headers)
    assert r.status_code == 422


def test_error_envelope_is_documented():
    responses = app.openapi()["paths"]["/api/appointments"]["post"]["responses"]
    assert responses["400"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
