"""
Tests for the slot conflict checker and the storage-level slot guarantee.
"""
from datetime import date
import pytest

from clinic_booking.appointments.models import Appointment, AppointmentStatus
from clinic_booking.appointments.repository import AppointmentRepository
from clinic_booking.appointments.conflicts import SlotConflictChecker
from clinic_booking.appointments.exceptions import DoctorUnavailableException, SlotTakenException
from clinic_booking.doctors.availability import InvalidTimeFormat

NEXT_MONDAY = date(2030, 1, 7)


def add_appointment(db, user, doctor, on=NEXT_MONDAY, time="10:00", status=AppointmentStatus.PENDING):
    appointment = Appointment(
        user_id=user.id,
        doctor_id=doctor.id,
        date=on,
        time=time,
        status=status,
        reason="Check-up",
        consultation_fee=doctor.consultation_fee,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


@pytest.fixture
def checker(db):
    return SlotConflictChecker(AppointmentRepository(db))


def test_free_slot_inside_hours_passes(checker, doctor):
    checker.check_slot(doctor, NEXT_MONDAY, "10:00")


def test_outside_hours_is_unavailable(checker, doctor):
    with pytest.raises(DoctorUnavailableException):
        checker.check_slot(doctor, NEXT_MONDAY, "17:00")
    with pytest.raises(DoctorUnavailableException):
        checker.check_slot(doctor, date(2030, 1, 8), "10:00")  # Tuesday


def test_active_appointment_takes_the_slot(db, checker, doctor, user):
    add_appointment(db, user, doctor)
    with pytest.raises(SlotTakenException):
        checker.check_slot(doctor, NEXT_MONDAY, "10:00")


def test_unpadded_time_matches_stored_slot(db, checker, doctor, user):
    add_appointment(db, user, doctor, time="09:30")
    with pytest.raises(SlotTakenException):
        checker.check_slot(doctor, NEXT_MONDAY, "9:30")


@pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED])
def test_inactive_appointments_free_the_slot(db, checker, doctor, user, status):
    add_appointment(db, user, doctor, status=status)
    checker.check_slot(doctor, NEXT_MONDAY, "10:00")


def test_excluded_appointment_does_not_conflict_with_itself(db, checker, doctor, user):
    appointment = add_appointment(db, user, doctor)
    checker.check_slot(doctor, NEXT_MONDAY, "10:00", exclude_appointment_id=appointment.id)


def test_malformed_time_is_an_error(checker, doctor):
    with pytest.raises(InvalidTimeFormat):
        checker.check_slot(doctor, NEXT_MONDAY, "ten")


def test_storage_rejects_second_active_appointment(db, doctor, user, other_user):
    add_appointment(db, user, doctor)
    repository = AppointmentRepository(db)
    duplicate = Appointment(
        user_id=other_user.id,
        doctor_id=doctor.id,
        date=NEXT_MONDAY,
        time="10:00",
        status=AppointmentStatus.PENDING,
        reason="Second booking",
        consultation_fee=doctor.consultation_fee,
    )
    with pytest.raises(SlotTakenException):
        repository.insert_appointment(duplicate)

    active = db.query(Appointment).filter(
        Appointment.doctor_id == doctor.id,
        Appointment.status.in_([AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED])
    ).count()
    assert active == 1


def test_storage_allows_rebooking_a_cancelled_slot(db, doctor, user, other_user):
    add_appointment(db, user, doctor, status=AppointmentStatus.CANCELLED)
    rebooked = AppointmentRepository(db).insert_appointment(Appointment(
        user_id=other_user.id,
        doctor_id=doctor.id,
        date=NEXT_MONDAY,
        time="10:00",
        status=AppointmentStatus.PENDING,
        reason="Rebooking",
        consultation_fee=doctor.consultation_fee,
    ))
    assert rebooked.id is not None
