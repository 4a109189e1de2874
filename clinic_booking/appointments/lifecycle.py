"""
Appointment lifecycle state machine.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled
    cancelled, completed: terminal

``transition`` mutates the appointment in memory only; persisting it and
sending notifications are the caller's job.
"""
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Union

from .models import Appointment, AppointmentStatus, CancelledBy
from .exceptions import InvalidTransitionException, MissingCancellationReasonException

MAX_CANCELLATION_REASON_LENGTH = 200

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

# Timestamp column stamped when each status is reached
STATUS_TIMESTAMPS = {
    AppointmentStatus.CONFIRMED: "confirmed_at",
    AppointmentStatus.CANCELLED: "cancelled_at",
    AppointmentStatus.COMPLETED: "completed_at",
}


def can_transition(current: AppointmentStatus, requested: AppointmentStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def _validated_cancellation(
    reason: Optional[str],
    cancelled_by: Optional[Union[CancelledBy, str]]
) -> tuple:
    reason = (reason or "").strip()
    if not reason:
        raise MissingCancellationReasonException()
    if len(reason) > MAX_CANCELLATION_REASON_LENGTH:
        raise MissingCancellationReasonException(
            f"Cancellation reason cannot be more than {MAX_CANCELLATION_REASON_LENGTH} characters"
        )
    try:
        cancelled_by = CancelledBy(cancelled_by)
    except ValueError:
        raise MissingCancellationReasonException("cancelled_by must be one of user, doctor, admin")
    return reason, cancelled_by


def transition(
    appointment: Appointment,
    new_status: Union[AppointmentStatus, str],
    now: datetime,
    cancellation_reason: Optional[str] = None,
    cancelled_by: Optional[Union[CancelledBy, str]] = None,
) -> Appointment:
    """
    Move an appointment to a new status.

    Args:
        appointment: Appointment to change
        new_status: Requested status
        now: Current time, used for the status timestamp
        cancellation_reason: Required when cancelling, 1-200 characters
        cancelled_by: Required when cancelling, one of user/doctor/admin

    Returns:
        Appointment: The same appointment, updated

    Raises:
        InvalidTransitionException: If the move is not in ALLOWED_TRANSITIONS
        MissingCancellationReasonException: If cancelling without reason or canceller
    """
    current = AppointmentStatus(appointment.status)
    requested = AppointmentStatus(new_status)

    if not can_transition(current, requested):
        raise InvalidTransitionException(current.value, requested.value)

    if requested == AppointmentStatus.CANCELLED:
        reason, who = _validated_cancellation(cancellation_reason, cancelled_by)
        appointment.cancellation_reason = reason
        appointment.cancelled_by = who

    appointment.status = requested

    timestamp_field = STATUS_TIMESTAMPS[requested]
    if getattr(appointment, timestamp_field) is None:
        setattr(appointment, timestamp_field, now)

    return appointment
