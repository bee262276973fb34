import logging

import redis
from sqlalchemy.exc import OperationalError

from clinic import rate_limiter
from clinic.domain.queue.repository import QueueRepository
from clinic.models import Role

from .conftest import PASSWORD


def book(client, patient, doctor, when):
    return client.post(
        "/api/patient/appointments",
        json={"doctorId": doctor.profile_id, "appointmentTime": when},
        headers=patient.headers,
    )


# ============================================================================
# Accounts
# ============================================================================


def test_register_and_login(client):
    response = client.post(
        "/api/register",
        json={
            "email": "Jane@Clinic.test",
            "password": PASSWORD,
            "role": "patient",
            "name": "Jane Doe",
            "age": 34,
            "allergies": "penicillin",
        },
    )
    assert response.status_code == 201
    assert response.json()["message"] == "User registered successfully!"

    login = client.post("/api/login", json={"email": "jane@clinic.test", "password": PASSWORD})
    assert login.status_code == 200
    body = login.json()
    assert body["message"] == "Login successful!"
    assert body["user"]["role"] == "patient"
    assert body["user"]["email"] == "jane@clinic.test"

    turn = client.get("/api/patient/my-turn", headers={"Authorization": f"Bearer {body['token']}"})
    assert turn.status_code == 404


def test_register_duplicate_email_is_conflict(client, make_member):
    member = make_member()
    response = client.post(
        "/api/register",
        json={"email": member.email, "password": PASSWORD, "name": "Someone"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


def test_register_doctor_requires_specialization(client):
    response = client.post(
        "/api/register",
        json={"email": "doc@clinic.test", "password": PASSWORD, "role": "doctor", "name": "Dr. No"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Specialization is required for doctor registration."


def test_register_blank_name_is_rejected(client):
    response = client.post(
        "/api/register",
        json={"email": "blank@clinic.test", "password": PASSWORD, "name": "   "},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_login_with_wrong_password(client, make_member):
    member = make_member()
    response = client.post("/api/login", json={"email": member.email, "password": "not-the-password"})
    assert response.status_code == 401
    assert response.json()["code"] == "invalid_credentials"


def test_public_doctor_list_is_sorted_by_name(client, make_member):
    make_member(Role.DOCTOR, name="Zed Young", specialization="Cardiology")
    make_member(Role.DOCTOR, name="Amy Adams", specialization="Dermatology")

    response = client.get("/api/public/doctors")

    assert response.status_code == 200
    assert [(d["name"], d["specialization"]) for d in response.json()] == [
        ("Amy Adams", "Dermatology"),
        ("Zed Young", "Cardiology"),
    ]


def test_admin_adds_doctor(client, make_member):
    admin = make_member(Role.ADMIN)
    payload = {
        "email": "new.doc@clinic.test",
        "password": PASSWORD,
        "name": "New Doc",
        "specialization": "Pediatrics",
    }

    response = client.post("/api/admin/doctors", json=payload, headers=admin.headers)

    assert response.status_code == 201
    assert response.json()["message"] == "Doctor added successfully!"
    assert [d["name"] for d in client.get("/api/public/doctors").json()] == ["New Doc"]


# ============================================================================
# Authentication and role gate
# ============================================================================


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/patient/my-appointments")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"


def test_garbage_token_is_unauthorized(client):
    response = client.get("/api/patient/my-appointments", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_wrong_role_is_forbidden(client, make_member):
    patient = make_member()
    staff = make_member(Role.STAFF)

    assert client.put("/api/doctor/complete-current-patient", headers=patient.headers).status_code == 403
    assert client.get("/api/admin/queue", headers=staff.headers).status_code == 403
    response = client.post(
        "/api/admin/doctors",
        json={"email": "x@clinic.test", "password": PASSWORD, "name": "X", "specialization": "Y"},
        headers=patient.headers,
    )
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


# ============================================================================
# Booking, queue and views
# ============================================================================


def test_patient_books_and_sees_wait_time(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR, name="Ada Lovelace", specialization="Neurology")
    patients = [make_member() for _ in range(4)]

    numbers = []
    for patient in patients:
        response = book(client, patient, doctor, next_slot())
        assert response.status_code == 201
        assert response.json()["message"] == "Appointment booked successfully!"
        numbers.append(response.json()["queueNumber"])
    assert numbers == [1, 2, 3, 4]

    turn = client.get("/api/patient/my-turn", headers=patients[-1].headers).json()
    assert turn["queueNumber"] == 4
    assert turn["patientsAhead"] == 3
    assert turn["estimatedWaitTimeMinutes"] == 45
    assert turn["doctorName"] == "Ada Lovelace"
    assert turn["doctorSpecialization"] == "Neurology"
    assert turn["status"] == "waiting"


def test_duplicate_booking_is_conflict(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR)
    patient = make_member()

    assert book(client, patient, doctor, next_slot(10)).status_code == 201
    response = book(client, patient, doctor, next_slot(11))
    assert response.status_code == 409


def test_booking_outside_hours_is_rejected(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR)
    patient = make_member()

    response = book(client, patient, doctor, next_slot(hour=20))

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_appointment_time"
    assert response.json()["message"] == "Appointments are only available between 8:00 AM and 8:00 PM."


def test_doctor_runs_the_queue(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR, name="Ada Lovelace")
    first = make_member(gender="female", allergies="latex")
    second = make_member()
    book(client, first, doctor, next_slot())
    book(client, second, doctor, next_slot())

    assert client.get("/api/doctor/current-patient", headers=doctor.headers).status_code == 404

    called = client.put("/api/doctor/complete-current-patient", headers=doctor.headers).json()
    assert called["outcome"] == "called_only"
    assert called["nextPatient"]["queueNumber"] == 1
    assert called["completedPatient"] is None

    current = client.get("/api/doctor/current-patient", headers=doctor.headers).json()
    assert current["queue_number"] == 1
    assert current["allergies"] == "latex"

    queue = client.get("/api/doctor/my-queue", headers=doctor.headers).json()
    assert [(e["queue_number"], e["status"]) for e in queue] == [(1, "consulting"), (2, "waiting")]

    advanced = client.put("/api/doctor/complete-current-patient", headers=doctor.headers).json()
    assert advanced["outcome"] == "completed_and_called"
    assert advanced["completedPatient"]["queueNumber"] == 1
    assert advanced["nextPatient"]["queueNumber"] == 2

    history = client.get("/api/patient/my-appointments", headers=first.headers).json()
    assert history[0]["status"] == "completed"


def test_idle_advance(client, make_member):
    doctor = make_member(Role.DOCTOR)
    response = client.put("/api/doctor/complete-current-patient", headers=doctor.headers)
    assert response.status_code == 200
    assert response.json()["outcome"] == "idle"


def test_doctor_denies_service(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR)
    patient = make_member()
    appointment_id = book(client, patient, doctor, next_slot()).json()["appointmentId"]

    missing_reason = client.put(f"/api/doctor/queue/{appointment_id}/deny", json={}, headers=doctor.headers)
    assert missing_reason.status_code == 400

    response = client.put(
        f"/api/doctor/queue/{appointment_id}/deny",
        json={"reason": "Referred to emergency"},
        headers=doctor.headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Patient service denied successfully."

    history = client.get("/api/patient/my-appointments", headers=patient.headers).json()
    assert history[0]["status"] == "denied"
    assert history[0]["reason_for_denial"] == "Referred to emergency"
    assert client.get("/api/patient/my-turn", headers=patient.headers).status_code == 404


def test_cancel_then_cancel_completed(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR)
    patient = make_member()

    first_id = book(client, patient, doctor, next_slot()).json()["appointmentId"]
    cancelled = client.delete(f"/api/patient/appointments/{first_id}", headers=patient.headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["message"] == "Appointment cancelled successfully."

    second_id = book(client, patient, doctor, next_slot()).json()["appointmentId"]
    client.put("/api/doctor/complete-current-patient", headers=doctor.headers)
    client.put("/api/doctor/complete-current-patient", headers=doctor.headers)

    response = client.delete(f"/api/patient/appointments/{second_id}", headers=patient.headers)
    assert response.status_code == 404

    statuses = {a["appointment_id"]: a["status"] for a in client.get(
        "/api/patient/my-appointments", headers=patient.headers
    ).json()}
    assert statuses == {first_id: "cancelled", second_id: "completed"}


def test_staff_walk_in_and_monitoring(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR, name="Ada Lovelace", specialization="Neurology")
    staff = make_member(Role.STAFF)
    admin = make_member(Role.ADMIN)
    patient = make_member()

    book(client, patient, doctor, next_slot())
    for name in ("Walk One", "Walk Two", "Walk Three"):
        response = client.post(
            "/api/staff/appointments",
            json={
                "patientName": name,
                "patientAge": 30,
                "doctorId": doctor.profile_id,
                "appointmentTime": next_slot(),
            },
            headers=staff.headers,
        )
        assert response.status_code == 201
        assert response.json()["message"] == "Appointment scheduled and patient added to queue successfully!"

    next3 = client.get("/api/staff/queue/next3", headers=staff.headers).json()
    assert [e["queue_number"] for e in next3] == [1, 2, 3]
    assert next3[1]["patient_name"] == "Walk One"
    assert next3[0]["doctor_name"] == "Ada Lovelace"

    monitor = client.get("/api/admin/queue", headers=admin.headers).json()
    assert len(monitor) == 4
    assert {e["status"] for e in monitor} == {"waiting"}

    count = client.get("/api/admin/patients/count", headers=admin.headers).json()
    assert count == {"count": 4}


def test_walk_in_requires_patient_name(client, make_member, next_slot):
    doctor = make_member(Role.DOCTOR)
    staff = make_member(Role.STAFF)
    response = client.post(
        "/api/staff/appointments",
        json={"patientName": " ", "doctorId": doctor.profile_id, "appointmentTime": next_slot()},
        headers=staff.headers,
    )
    assert response.status_code == 422


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_privileged_self_registration_is_logged(client, caplog):
    with caplog.at_level(logging.WARNING, logger="clinic.domain.accounts.service"):
        response = client.post(
            "/api/register",
            json={"email": "desk@clinic.test", "password": PASSWORD, "role": "staff", "name": "Front Desk"},
        )

    assert response.status_code == 201
    assert any("privileged role 'staff'" in r.getMessage() for r in caplog.records)


def test_store_failure_returns_transaction_failed(client, make_member, next_slot, monkeypatch):
    doctor = make_member(Role.DOCTOR)
    patient = make_member()
    book(client, patient, doctor, next_slot())
    client.put("/api/doctor/complete-current-patient", headers=doctor.headers)

    def _raise(db, doctor_id):
        raise OperationalError("SELECT queue_entries", {}, Exception("database is locked"))

    monkeypatch.setattr(QueueRepository, "get_next_waiting_entry", staticmethod(_raise))
    response = client.put("/api/doctor/complete-current-patient", headers=doctor.headers)

    assert response.status_code == 500
    assert response.json() == {
        "code": "transaction_failed",
        "message": "Server error during completing appointment and calling next patient. No changes were saved.",
    }
    current = client.get("/api/doctor/current-patient", headers=doctor.headers)
    assert current.json()["queue_number"] == 1


def test_login_rate_limit_uses_error_body(client, monkeypatch):
    def _no_redis():
        raise redis.ConnectionError("redis is down")

    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limiter, "memory_cache", {})
    monkeypatch.setattr(rate_limiter, "get_redis_client", _no_redis)

    credentials = {"email": "nobody@clinic.test", "password": PASSWORD}
    for _ in range(20):
        assert client.post("/api/login", json=credentials).status_code == 401

    response = client.post("/api/login", json=credentials)

    assert response.status_code == 429
    body = response.json()
    assert body["code"] == "rate_limited"
    assert body["message"] == "Rate limit exceeded. Maximum 20 requests per 300 seconds."
    assert body["details"]["retry_after"] > 0
    assert "Retry-After" in response.headers
