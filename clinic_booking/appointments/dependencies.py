"""
FastAPI dependencies that wire an AppointmentService for each request.
"""
from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session, sessionmaker

from ..config import settings
from ..core.clock import Clock
from ..database import get_db, get_session_factory
from ..notifications.outbox import NotificationFailureLog, NotificationOutbox, Notifier
from .repository import EmailSentRecorder
from .service import AppointmentService


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_failure_log(request: Request) -> NotificationFailureLog:
    return request.app.state.notification_failures


def get_outbox(
    background_tasks: BackgroundTasks,
    notifier: Notifier = Depends(get_notifier),
    failure_log: NotificationFailureLog = Depends(get_failure_log),
    session_factory: sessionmaker = Depends(get_session_factory)
) -> NotificationOutbox:
    """Outbox that delivers after the response has been sent and flags sent emails"""
    return NotificationOutbox(
        notifier,
        failure_log,
        scheduler=background_tasks.add_task,
        on_delivered=EmailSentRecorder(session_factory),
    )


def get_appointment_service(
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    outbox: NotificationOutbox = Depends(get_outbox)
) -> AppointmentService:
    return AppointmentService(
        db,
        clock,
        outbox,
        cancellation_window_hours=settings.cancellation_window_hours,
        request=request,
    )
