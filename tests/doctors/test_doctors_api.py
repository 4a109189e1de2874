"""
Tests for the doctor endpoints.
"""
from datetime import date
import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from clinic_booking.appointments.models import Appointment, AppointmentStatus
from clinic_booking.core.audit_models import AuditLog
from clinic_booking.doctors.models import Doctor, Specialty

NEXT_MONDAY = date(2030, 1, 7)

NEW_DOCTOR = {
    "name": "Dr. Lisa Cuddy",
    "specialty": "Endocrinology",
    "qualifications": "MD, MBA",
    "experience": 15,
    "availability": [
        {"day": "Tuesday", "start_time": "9:00", "end_time": "13:00"},
        {"day": "Tuesday", "start_time": "12:00", "end_time": "16:00"},
    ],
    "hospital": "Princeton-Plainsboro",
    "address": "1 Hospital Road",
    "city": "Princeton",
    "state": "NJ",
    "zip_code": "08540",
    "phone": "+1 609 555 0101",
    "email": "cuddy@example.com",
    "consultation_fee": "200.00",
}


def book(client, headers, doctor_id, on=NEXT_MONDAY, time="10:00"):
    return client.post(
        "/api/v1/appointments",
        json={"doctor_id": doctor_id, "date": on.isoformat(), "time": time, "reason": "Check-up"},
        headers=headers,
    )


def test_admin_creates_doctor(client, admin_headers):
    response = client.post("/api/v1/doctors", json=NEW_DOCTOR, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["is_active"] is True
    assert data["availability"][0]["start_time"] == "09:00"
    assert len(data["availability"]) == 2
    assert data["full_address"] == "1 Hospital Road, Princeton, NJ 08540"
    assert float(data["consultation_fee"]) == 200.0


def test_user_cannot_create_doctor(client, user_headers):
    response = client.post("/api/v1/doctors", json=NEW_DOCTOR, headers=user_headers)
    assert response.status_code == 403
    assert response.json()["kind"] == "AccessDenied"


def test_duplicate_doctor_email(client, admin_headers):
    client.post("/api/v1/doctors", json=NEW_DOCTOR, headers=admin_headers)
    response = client.post("/api/v1/doctors", json=NEW_DOCTOR, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["kind"] == "EmailAlreadyExists"


@pytest.mark.parametrize("availability", [
    [],
    [{"day": "Monday", "start_time": "17:00", "end_time": "09:00"}],
    [{"day": "Monday", "start_time": "09:00", "end_time": "09:00"}],
    [{"day": "Funday", "start_time": "09:00", "end_time": "17:00"}],
    [{"day": "Monday", "start_time": "9am", "end_time": "17:00"}],
])
def test_invalid_availability_rejected(client, admin_headers, availability):
    response = client.post("/api/v1/doctors", json={**NEW_DOCTOR, "availability": availability}, headers=admin_headers)
    assert response.status_code == 422


def test_update_doctor(client, admin_headers, doctor):
    response = client.put(
        f"/api/v1/doctors/{doctor.id}",
        json={"consultation_fee": "175.50", "city": "Trenton"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["city"] == "Trenton"
    assert float(response.json()["consultation_fee"]) == 175.5
    assert response.json()["rating"] == 4.5


def test_rating_is_not_updatable(client, admin_headers, doctor):
    response = client.put(f"/api/v1/doctors/{doctor.id}", json={"rating": 1.0}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["rating"] == 4.5


def test_get_doctor(client, doctor):
    response = client.get(f"/api/v1/doctors/{doctor.id}")
    assert response.status_code == 200
    assert response.json()["name"] == doctor.name


def test_get_missing_doctor(client):
    response = client.get("/api/v1/doctors/999")
    assert response.status_code == 404
    assert response.json()["kind"] == "NotFound"


def test_list_and_filter_doctors(client, doctor_factory, doctor):
    doctor_factory("derm@example.com", name="Dr. Skin", specialty=Specialty.DERMATOLOGY, city="Trenton", rating=4.9)
    doctor_factory("gone@example.com", name="Dr. Gone", is_active=False)

    response = client.get("/api/v1/doctors")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [d["name"] for d in data["items"]] == ["Dr. Gregory House", "Dr. Skin"]

    by_specialty = client.get("/api/v1/doctors", params={"specialty": "Dermatology"}).json()
    assert [d["name"] for d in by_specialty["items"]] == ["Dr. Skin"]

    by_search = client.get("/api/v1/doctors", params={"search": "derma"}).json()
    assert by_search["total"] == 1

    by_city = client.get("/api/v1/doctors", params={"city": "prince"}).json()
    assert [d["name"] for d in by_city["items"]] == ["Dr. Gregory House"]

    by_rating = client.get("/api/v1/doctors", params={"sort": "rating", "order": "desc"}).json()
    assert by_rating["items"][0]["name"] == "Dr. Skin"

    retired = client.get("/api/v1/doctors", params={"is_active": "false"}).json()
    assert [d["name"] for d in retired["items"]] == ["Dr. Gone"]


def test_specialties_and_popular(client, doctor_factory, doctor):
    doctor_factory("derm@example.com", name="Dr. Skin", specialty=Specialty.DERMATOLOGY, rating=4.9)
    doctor_factory("gp2@example.com", name="Dr. Second", rating=3.0)

    specialties = client.get("/api/v1/doctors/specialties").json()
    assert {"specialty": "General Medicine", "count": 2} in specialties
    assert {"specialty": "Dermatology", "count": 1} in specialties

    popular = client.get("/api/v1/doctors/popular", params={"limit": 2}).json()
    assert [d["name"] for d in popular] == ["Dr. Skin", "Dr. Gregory House"]


def test_availability_for_date(client, user_headers, doctor):
    book(client, user_headers, doctor.id, time="11:00")

    response = client.get(f"/api/v1/doctors/{doctor.id}/availability", params={"date": NEXT_MONDAY.isoformat()})
    assert response.status_code == 200
    data = response.json()
    assert data["available"] is True
    assert data["day"] == "Monday"
    assert data["slots"] == [{"day": "Monday", "start_time": "09:00", "end_time": "17:00"}]
    assert data["booked_times"] == ["11:00"]

    closed = client.get(f"/api/v1/doctors/{doctor.id}/availability", params={"date": "2030-01-08"}).json()
    assert closed["available"] is False
    assert closed["slots"] == []


def test_availability_in_the_past(client, doctor):
    response = client.get(f"/api/v1/doctors/{doctor.id}/availability", params={"date": "2029-12-01"})
    assert response.status_code == 422


def test_doctor_stats(client, admin_headers, user_headers, doctor):
    book(client, user_headers, doctor.id)
    response = client.get(f"/api/v1/doctors/{doctor.id}/stats", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_appointments"] == 1
    assert data["upcoming_appointments"] == 1
    assert data["by_status"]["pending"] == 1


def test_deactivation_scenario(client, db, admin_headers, user_headers, doctor):
    appointment_id = book(client, user_headers, doctor.id).json()["id"]

    blocked = client.delete(f"/api/v1/doctors/{doctor.id}", headers=admin_headers)
    assert blocked.status_code == 409
    assert blocked.json()["kind"] == "HasActiveAppointments"

    cancel = client.patch(
        f"/api/v1/appointments/{appointment_id}/cancel",
        json={"cancellation_reason": "Doctor retiring"},
        headers=user_headers,
    )
    assert cancel.status_code == 200

    deleted = client.delete(f"/api/v1/doctors/{doctor.id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json()["is_active"] is False

    db.expire_all()
    assert db.query(Doctor).filter(Doctor.id == doctor.id).one().is_active is False
    assert db.query(AuditLog).filter(AuditLog.action == "DOCTOR_DEACTIVATED").count() == 1

    assert client.get(f"/api/v1/doctors/{doctor.id}").json()["kind"] == "DoctorUnavailable"
    rebook = book(client, user_headers, doctor.id, time="12:00")
    assert rebook.status_code == 409
    assert rebook.json()["kind"] == "DoctorUnavailable"


def test_update_cannot_retire_doctor_with_bookings(client, db, admin_headers, user_headers, doctor):
    appointment_id = book(client, user_headers, doctor.id).json()["id"]

    blocked = client.put(f"/api/v1/doctors/{doctor.id}", json={"is_active": False}, headers=admin_headers)
    assert blocked.status_code == 409
    assert blocked.json()["kind"] == "HasActiveAppointments"

    db.expire_all()
    assert db.query(Doctor).filter(Doctor.id == doctor.id).one().is_active is True

    client.patch(
        f"/api/v1/appointments/{appointment_id}/cancel",
        json={"cancellation_reason": "Doctor retiring"},
        headers=user_headers,
    )
    retired = client.put(f"/api/v1/doctors/{doctor.id}", json={"is_active": False}, headers=admin_headers)
    assert retired.status_code == 200
    assert retired.json()["is_active"] is False


def test_inactive_doctor_can_be_reactivated(client, admin_headers, doctor_factory):
    retired = doctor_factory("gone@example.com", name="Dr. Gone", is_active=False)
    response = client.put(f"/api/v1/doctors/{retired.id}", json={"is_active": True}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True


def test_retiring_locks_the_doctor_row(client, db, admin_headers, doctor):
    statements = []

    def capture(orm_execute_state):
        statements.append(str(orm_execute_state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db, "do_orm_execute", capture)
    try:
        response = client.delete(f"/api/v1/doctors/{doctor.id}", headers=admin_headers)
    finally:
        event.remove(db, "do_orm_execute", capture)

    assert response.status_code == 200
    assert any("FROM doctors" in s and s.endswith("FOR UPDATE") for s in statements)


def test_past_appointments_do_not_block_deactivation(client, db, admin_headers, user, doctor):
    db.add(Appointment(
        user_id=user.id,
        doctor_id=doctor.id,
        date=date(2029, 12, 31),
        time="10:00",
        status=AppointmentStatus.CONFIRMED,
        reason="Old visit",
        consultation_fee=doctor.consultation_fee,
    ))
    db.commit()

    response = client.delete(f"/api/v1/doctors/{doctor.id}", headers=admin_headers)
    assert response.status_code == 200
