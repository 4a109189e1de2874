"""
Tests for the appointment status state machine.
"""
from datetime import date, datetime
import pytest

from clinic_booking.appointments.models import Appointment, AppointmentStatus, CancelledBy
from clinic_booking.appointments.lifecycle import ALLOWED_TRANSITIONS, can_transition, transition
from clinic_booking.appointments.exceptions import (
    InvalidTransitionException,
    MissingCancellationReasonException,
)

NOW = datetime(2030, 1, 1, 9, 0)

LEGAL = [(current, requested) for current, targets in ALLOWED_TRANSITIONS.items() for requested in targets]
ILLEGAL = [
    (current, requested)
    for current in AppointmentStatus
    for requested in AppointmentStatus
    if requested not in ALLOWED_TRANSITIONS[current]
]


def make_appointment(status=AppointmentStatus.PENDING):
    return Appointment(
        id=1,
        user_id=1,
        doctor_id=1,
        date=date(2030, 1, 7),
        time="10:00",
        status=status,
        reason="Check-up",
    )


def test_transition_table():
    assert can_transition(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
    assert can_transition(AppointmentStatus.PENDING, AppointmentStatus.CANCELLED)
    assert can_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)
    assert can_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED)
    assert not can_transition(AppointmentStatus.PENDING, AppointmentStatus.COMPLETED)
    assert not ALLOWED_TRANSITIONS[AppointmentStatus.CANCELLED]
    assert not ALLOWED_TRANSITIONS[AppointmentStatus.COMPLETED]


@pytest.mark.parametrize("current,requested", ILLEGAL)
def test_illegal_transitions_are_rejected(current, requested):
    appointment = make_appointment(current)
    with pytest.raises(InvalidTransitionException):
        transition(appointment, requested, NOW, cancellation_reason="reason", cancelled_by="admin")
    assert appointment.status == current


@pytest.mark.parametrize("current,requested", LEGAL)
def test_legal_transitions_stamp_their_timestamp(current, requested):
    appointment = make_appointment(current)
    transition(appointment, requested, NOW, cancellation_reason="Patient unwell", cancelled_by="user")
    assert appointment.status == requested
    field = {
        AppointmentStatus.CONFIRMED: "confirmed_at",
        AppointmentStatus.CANCELLED: "cancelled_at",
        AppointmentStatus.COMPLETED: "completed_at",
    }[requested]
    assert getattr(appointment, field) == NOW


def test_existing_timestamp_is_not_overwritten():
    earlier = datetime(2029, 12, 30, 8, 0)
    appointment = make_appointment()
    appointment.confirmed_at = earlier
    transition(appointment, AppointmentStatus.CONFIRMED, NOW)
    assert appointment.confirmed_at == earlier


def test_cancel_records_reason_and_canceller():
    appointment = make_appointment(AppointmentStatus.CONFIRMED)
    transition(appointment, "cancelled", NOW, cancellation_reason="  Doctor ill  ", cancelled_by=CancelledBy.DOCTOR)
    assert appointment.cancellation_reason == "Doctor ill"
    assert appointment.cancelled_by == CancelledBy.DOCTOR
    assert appointment.cancelled_at == NOW


@pytest.mark.parametrize("reason,cancelled_by", [
    (None, "admin"),
    ("   ", "admin"),
    ("x" * 201, "admin"),
    ("Valid reason", None),
    ("Valid reason", "nurse"),
])
def test_cancel_requires_reason_and_canceller(reason, cancelled_by):
    appointment = make_appointment()
    with pytest.raises(MissingCancellationReasonException):
        transition(appointment, AppointmentStatus.CANCELLED, NOW, cancellation_reason=reason, cancelled_by=cancelled_by)
    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.cancelled_at is None
