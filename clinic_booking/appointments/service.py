"""
Appointment Service - Booking, lifecycle and reporting for appointments.

Each request builds its own ``AppointmentService`` wired with the database
session, the clinic clock and the notification outbox. Every state-changing
operation commits first, then writes the audit entry, then queues the
notification; neither of the last two can undo or fail the change.
"""
from datetime import date, timedelta
from typing import List, Optional
from fastapi import Request
from sqlalchemy.orm import Session
import logging

from ..auth.models import User
from ..core.clock import Clock
from ..core.audit_service import create_audit_log
from ..core.pagination import PageParams, PageResponse, paginate
from ..exceptions import NotFoundException, AccessDeniedException, ValidationFailedException
from ..notifications.outbox import AppointmentNotice, NotificationOutbox
from .models import Appointment, AppointmentStatus, CancelledBy, PaymentStatus
from .schemas import (
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentRescheduleRequest,
    AppointmentResponse,
    AppointmentStatsResponse,
    StatusBreakdown,
)
from .repository import AppointmentRepository
from .conflicts import SlotConflictChecker
from .exceptions import (
    DoctorUnavailableException,
    InvalidStateException,
    CannotCancelException,
)
from . import lifecycle

# Set up logging
logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Booking, reschedule, cancel and status operations.

    Args:
        db: Database session
        clock: Source of the current clinic time
        outbox: Where notifications are queued
        cancellation_window_hours: Minimum lead time for a cancellation
        request: Current HTTP request, used for audit IP addresses
    """

    def __init__(
        self,
        db: Session,
        clock: Clock,
        outbox: NotificationOutbox,
        cancellation_window_hours: int = 24,
        request: Optional[Request] = None
    ):
        self.db = db
        self.clock = clock
        self.outbox = outbox
        self.cancellation_window_hours = cancellation_window_hours
        self.request = request
        self.repository = AppointmentRepository(db)
        self.checker = SlotConflictChecker(self.repository)

    # Helpers

    def to_response(self, appointment: Appointment) -> AppointmentResponse:
        return AppointmentResponse.from_appointment(
            appointment, self.clock.now(), self.cancellation_window_hours
        )

    def _load(self, appointment_id: int) -> Appointment:
        appointment = self.repository.find_appointment(appointment_id)
        if not appointment:
            raise NotFoundException("Appointment not found")
        return appointment

    def _authorize(self, appointment: Appointment, requester: User) -> None:
        if not requester.is_admin and appointment.user_id != requester.id:
            logger.warning(f"User {requester.id} denied access to appointment {appointment.id}")
            raise AccessDeniedException("You don't have permission to access this appointment")

    def _ensure_not_past(self, on: date) -> None:
        if on < self.clock.today():
            raise ValidationFailedException("Appointment date cannot be in the past")

    def _audit(self, action: str, user_id: int, details: dict) -> None:
        create_audit_log(self.db, action, user_id=user_id, request=self.request, details=details)

    # Booking orchestrator

    def book_appointment(self, user: User, data: AppointmentCreate) -> Appointment:
        """
        Book a new appointment for a user.

        Args:
            user: The booking user
            data: Requested doctor, date, time and visit details

        Returns:
            Appointment: The created appointment, status pending

        Raises:
            ValidationFailedException: If the date is in the past
            NotFoundException: If the doctor does not exist
            DoctorUnavailableException: If the doctor is inactive or not open at that time
            SlotTakenException: If the slot is already held, checked early or at commit
        """
        self._ensure_not_past(data.date)

        doctor = self.repository.find_doctor(data.doctor_id, lock=True)
        if not doctor:
            raise NotFoundException("Doctor not found")
        if not doctor.is_active:
            logger.warning(f"Booking rejected: doctor {doctor.id} is inactive")
            raise DoctorUnavailableException("Doctor is not currently accepting appointments")

        self.checker.check_slot(doctor, data.date, data.time)

        appointment = Appointment(
            user_id=user.id,
            doctor_id=doctor.id,
            date=data.date,
            time=data.time,
            status=AppointmentStatus.PENDING,
            reason=data.reason,
            notes=data.notes,
            symptoms=data.symptoms,
            consultation_fee=doctor.consultation_fee,
            payment_status=PaymentStatus.PENDING,
        )
        appointment = self.repository.insert_appointment(appointment)
        logger.info(
            f"Appointment {appointment.id} booked by user {user.id} with doctor {doctor.id} "
            f"on {appointment.date} at {appointment.time}"
        )

        notice = AppointmentNotice.from_appointment(appointment)
        self._audit("APPOINTMENT_BOOKED", user.id, {
            "appointment_id": appointment.id,
            "doctor_id": doctor.id,
            "date": appointment.date.isoformat(),
            "time": appointment.time,
        })
        self.outbox.booked(notice)
        return appointment

    # Read paths

    def list_appointments(
        self,
        requester: User,
        page_params: PageParams,
        status: Optional[AppointmentStatus] = None,
        upcoming: bool = False,
        doctor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        sort: str = "date",
        order: str = "desc"
    ) -> PageResponse:
        """
        Paginated appointments. Users only ever see their own; the doctor and
        date range filters apply to admins.
        """
        if requester.is_admin:
            query = self.repository.list_query(
                doctor_id=doctor_id,
                status=status,
                date_from=date_from,
                date_to=date_to,
                upcoming_from=self.clock.today() if upcoming else None,
                sort=sort,
                order=order,
            )
        else:
            query = self.repository.list_query(
                user_id=requester.id,
                status=status,
                upcoming_from=self.clock.today() if upcoming else None,
                sort=sort,
                order=order,
            )
        return paginate(query, page_params, transform=self.to_response)

    def get_appointment(self, appointment_id: int, requester: User) -> Appointment:
        appointment = self._load(appointment_id)
        self._authorize(appointment, requester)
        return appointment

    # Lifecycle

    def update_status(self, appointment_id: int, requester: User, data: AppointmentStatusUpdate) -> Appointment:
        """
        Apply an admin status change through the lifecycle state machine.

        Raises:
            NotFoundException: If the appointment does not exist
            InvalidTransitionException: If the change is not allowed
            MissingCancellationReasonException: If cancelling without a reason
        """
        appointment = self._load(appointment_id)
        previous = appointment.status

        cancelled_by = None
        if data.status == AppointmentStatus.CANCELLED:
            cancelled_by = data.cancelled_by or CancelledBy.ADMIN

        lifecycle.transition(
            appointment,
            data.status,
            self.clock.now(),
            cancellation_reason=data.cancellation_reason,
            cancelled_by=cancelled_by,
        )
        appointment = self.repository.update_appointment(appointment)
        logger.info(
            f"Appointment {appointment.id} status changed from {previous.value} "
            f"to {appointment.status.value} by user {requester.id}"
        )

        notice = AppointmentNotice.from_appointment(appointment)
        self._audit("APPOINTMENT_STATUS_CHANGED", requester.id, {
            "appointment_id": appointment.id,
            "from": previous.value,
            "to": appointment.status.value,
        })
        if appointment.status == AppointmentStatus.CONFIRMED:
            self.outbox.confirmed(notice)
        elif appointment.status == AppointmentStatus.CANCELLED:
            self.outbox.cancelled(notice)
        return appointment

    def cancel(self, appointment_id: int, requester: User, cancellation_reason: str) -> Appointment:
        """
        Cancel an appointment at the owner's or an admin's request.

        The cancellation window applies to admins as well as users.

        Raises:
            NotFoundException: If the appointment does not exist
            AccessDeniedException: If the requester is neither owner nor admin
            CannotCancelException: If the appointment is terminal or too close
            MissingCancellationReasonException: If the reason is blank
        """
        appointment = self._load(appointment_id)
        self._authorize(appointment, requester)

        if not appointment.is_active:
            raise CannotCancelException(
                f"Appointment cannot be cancelled from status {appointment.status.value}"
            )
        if not appointment.can_be_cancelled(self.clock.now(), self.cancellation_window_hours):
            logger.warning(f"Cancellation of appointment {appointment.id} rejected: inside window")
            raise CannotCancelException(
                f"Appointment cannot be cancelled (must be at least "
                f"{self.cancellation_window_hours} hours before appointment time)"
            )

        lifecycle.transition(
            appointment,
            AppointmentStatus.CANCELLED,
            self.clock.now(),
            cancellation_reason=cancellation_reason,
            cancelled_by=CancelledBy.ADMIN if requester.is_admin else CancelledBy.USER,
        )
        appointment = self.repository.update_appointment(appointment)
        logger.info(f"Appointment {appointment.id} cancelled by user {requester.id}")

        notice = AppointmentNotice.from_appointment(appointment)
        self._audit("APPOINTMENT_CANCELLED", requester.id, {
            "appointment_id": appointment.id,
            "cancelled_by": appointment.cancelled_by.value,
            "reason": appointment.cancellation_reason,
        })
        self.outbox.cancelled(notice)
        return appointment

    def reschedule(self, appointment_id: int, requester: User, data: AppointmentRescheduleRequest) -> Appointment:
        """
        Move an appointment to a new date and time, keeping its id and status.

        Raises:
            NotFoundException: If the appointment does not exist
            AccessDeniedException: If the requester is neither owner nor admin
            InvalidStateException: If the appointment is cancelled or completed
            ValidationFailedException: If the new date is in the past
            DoctorUnavailableException: If the doctor is inactive or not open at the new time
            SlotTakenException: If another active appointment holds the new slot
        """
        appointment = self._load(appointment_id)
        self._authorize(appointment, requester)

        if not appointment.is_active:
            raise InvalidStateException()
        self._ensure_not_past(data.date)

        doctor = self.repository.find_doctor(appointment.doctor_id, lock=True)
        if not doctor.is_active:
            raise DoctorUnavailableException("Doctor is not currently accepting appointments")

        self.checker.check_slot(doctor, data.date, data.time, exclude_appointment_id=appointment.id)

        previous = {"date": appointment.date.isoformat(), "time": appointment.time}
        appointment.date = data.date
        appointment.time = data.time
        appointment.email_sent = False
        if data.reason:
            appointment.reason = data.reason.strip()
        appointment = self.repository.update_appointment(appointment)
        logger.info(
            f"Appointment {appointment.id} rescheduled from {previous['date']} {previous['time']} "
            f"to {appointment.date} {appointment.time}"
        )

        notice = AppointmentNotice.from_appointment(appointment)
        self._audit("APPOINTMENT_RESCHEDULED", requester.id, {
            "appointment_id": appointment.id,
            "from": previous,
            "to": {"date": appointment.date.isoformat(), "time": appointment.time},
        })
        self.outbox.rescheduled(notice)
        return appointment

    # Reporting

    def get_stats(
        self,
        doctor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> AppointmentStatsResponse:
        """
        Totals, upcoming count, revenue and per-status breakdown, optionally
        limited to one doctor and an appointment date range.
        """
        scope = dict(doctor_id=doctor_id, date_from=date_from, date_to=date_to)
        breakdown = self.repository.status_breakdown(**scope)
        return AppointmentStatsResponse(
            total=sum(entry["count"] for entry in breakdown.values()),
            upcoming=self.repository.count_upcoming(self.clock.today(), **scope),
            revenue=breakdown[AppointmentStatus.COMPLETED.value]["total_fees"],
            by_status={key: StatusBreakdown(**entry) for key, entry in breakdown.items()},
        )

    def get_upcoming(self, days: int) -> List[Appointment]:
        """Active appointments from today through today + days, soonest first"""
        today = self.clock.today()
        return self.repository.upcoming(today, today + timedelta(days=days))

    def send_reminders(self, days: int) -> int:
        """
        Queue a reminder for every upcoming appointment in the window.

        Returns:
            int: Number of reminders queued
        """
        appointments = self.get_upcoming(days)
        for appointment in appointments:
            self.outbox.reminder(AppointmentNotice.from_appointment(appointment))
        logger.info(f"Queued {len(appointments)} reminder(s) for the next {days} day(s)")
        return len(appointments)
