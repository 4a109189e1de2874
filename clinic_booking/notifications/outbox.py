"""
One-way outbound queue for appointment notifications.

Services hand the outbox a detached ``AppointmentNotice`` after their commit.
The outbox passes delivery to a scheduler (``BackgroundTasks.add_task`` in the
HTTP layer) and returns immediately. A failed delivery is logged and kept in a
bounded ``NotificationFailureLog``; it never reaches the caller that changed
the appointment.
"""
import logging
import threading
from collections import deque
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict

# Set up logging
logger = logging.getLogger(__name__)


class AppointmentNotice(BaseModel):
    """
    Snapshot of everything a notification needs

    Taken while the database session is still open so delivery can run after
    the request has finished.
    """
    appointment_id: int
    user_name: str
    user_email: str
    doctor_name: str
    specialty: str
    hospital: str
    address: str
    date: date
    time: str
    reason: str
    consultation_fee: Decimal
    status: str
    cancellation_reason: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_appointment(cls, appointment) -> "AppointmentNotice":
        doctor = appointment.doctor
        user = appointment.user
        return cls(
            appointment_id=appointment.id,
            user_name=user.name,
            user_email=user.email,
            doctor_name=doctor.name,
            specialty=doctor.specialty.value,
            hospital=doctor.hospital,
            address=doctor.full_address,
            date=appointment.date,
            time=appointment.time,
            reason=appointment.reason,
            consultation_fee=appointment.consultation_fee,
            status=appointment.status.value,
            cancellation_reason=appointment.cancellation_reason,
        )


class Notifier(Protocol):
    def notify_booked(self, notice: AppointmentNotice) -> None: ...
    def notify_confirmed(self, notice: AppointmentNotice) -> None: ...
    def notify_cancelled(self, notice: AppointmentNotice) -> None: ...
    def notify_rescheduled(self, notice: AppointmentNotice) -> None: ...
    def notify_reminder(self, notice: AppointmentNotice) -> None: ...


class NotificationSkipped(Exception):
    """Raised by a notifier that deliberately sent nothing, e.g. mail is not configured."""


class NotificationFailure(BaseModel):
    event: str
    appointment_id: int
    recipient: str
    error: str
    failed_at: datetime


class NotificationFailureLog:
    """Most recent failed deliveries, oldest dropped first."""

    def __init__(self, max_size: int = 100):
        self._entries = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def record(self, event: str, notice: AppointmentNotice, error: Exception) -> NotificationFailure:
        failure = NotificationFailure(
            event=event,
            appointment_id=notice.appointment_id,
            recipient=notice.user_email,
            error=str(error) or error.__class__.__name__,
            failed_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._entries.append(failure)
        return failure

    def entries(self) -> List[NotificationFailure]:
        """Failures, newest first"""
        with self._lock:
            return list(reversed(self._entries))


Scheduler = Callable[..., None]


def run_immediately(func: Callable, *args) -> None:
    func(*args)


class NotificationOutbox:
    """
    Queue notifications without waiting for them.

    Args:
        notifier: Object implementing the Notifier methods
        failure_log: Where failed deliveries are recorded
        scheduler: Callable taking (func, *args) that runs func later;
            defaults to running it inline, still isolated from the caller
        on_delivered: Called with (event, notice) after a successful send
    """

    def __init__(
        self,
        notifier: Notifier,
        failure_log: NotificationFailureLog,
        scheduler: Optional[Scheduler] = None,
        on_delivered: Optional[Callable[[str, AppointmentNotice], None]] = None
    ):
        self.notifier = notifier
        self.failure_log = failure_log
        self.schedule = scheduler or run_immediately
        self.on_delivered = on_delivered

    def booked(self, notice: AppointmentNotice) -> None:
        self._enqueue("booked", self.notifier.notify_booked, notice)

    def confirmed(self, notice: AppointmentNotice) -> None:
        self._enqueue("confirmed", self.notifier.notify_confirmed, notice)

    def cancelled(self, notice: AppointmentNotice) -> None:
        self._enqueue("cancelled", self.notifier.notify_cancelled, notice)

    def rescheduled(self, notice: AppointmentNotice) -> None:
        self._enqueue("rescheduled", self.notifier.notify_rescheduled, notice)

    def reminder(self, notice: AppointmentNotice) -> None:
        self._enqueue("reminder", self.notifier.notify_reminder, notice)

    def _enqueue(self, event: str, send: Callable[[AppointmentNotice], None], notice: AppointmentNotice) -> None:
        logger.info(f"Queued {event} notification for appointment {notice.appointment_id}")
        try:
            self.schedule(self._deliver, event, send, notice)
        except Exception as e:
            logger.error(f"Could not queue {event} notification for appointment {notice.appointment_id}: {str(e)}")
            self.failure_log.record(event, notice, e)

    def _deliver(self, event: str, send: Callable[[AppointmentNotice], None], notice: AppointmentNotice) -> None:
        try:
            send(notice)
        except NotificationSkipped as e:
            logger.info(f"Skipped {event} notification for appointment {notice.appointment_id}: {str(e)}")
            return
        except Exception as e:
            logger.error(
                f"Failed to deliver {event} notification for appointment "
                f"{notice.appointment_id} to {notice.user_email}: {str(e)}"
            )
            self.failure_log.record(event, notice, e)
            return

        logger.info(f"Delivered {event} notification for appointment {notice.appointment_id}")
        if self.on_delivered:
            self.on_delivered(event, notice)
