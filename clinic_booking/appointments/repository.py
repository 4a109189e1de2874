"""
Appointment Repository - Persistence for the booking core.

Every request-path write goes through ``_commit`` so that storage failures surface as
domain errors: a violation of the active-slot unique index becomes
``SlotTakenException`` and a lost connection becomes
``ServiceUnavailableException``.
"""
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, Query, joinedload
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
import logging

from ..doctors.models import Doctor
from ..exceptions import ServiceUnavailableException
from ..notifications.outbox import AppointmentNotice
from .models import Appointment, AppointmentStatus, ACTIVE_STATUSES
from .exceptions import SlotTakenException

# Set up logging
logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"


def _is_slot_violation(error: IntegrityError) -> bool:
    """Whether an IntegrityError came from the active-slot index.

    SQLite reports the indexed columns rather than the index name, so both are
    accepted.
    """
    message = str(error.orig)
    return ACTIVE_SLOT_INDEX in message or "appointments.doctor_id, appointments.date, appointments.time" in message


class AppointmentRepository:
    """Queries and writes against the appointments table."""

    def __init__(self, db: Session):
        self.db = db

    # Lookups

    def find_doctor(self, doctor_id: int, lock: bool = False) -> Optional[Doctor]:
        """
        Load a doctor, optionally taking a shared row lock.

        Bookings take the shared lock so that retiring the doctor, which takes
        an exclusive lock on the same row, waits for them and then sees their
        appointments. SQLite ignores the lock clause.
        """
        query = self.db.query(Doctor).filter(Doctor.id == doctor_id)
        if lock:
            query = query.with_for_update(read=True)
        return query.first()

    def find_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return (
            self.db.query(Appointment)
            .options(joinedload(Appointment.user), joinedload(Appointment.doctor))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    def find_active_appointment(
        self,
        doctor_id: int,
        on: date,
        time: str,
        exclude_id: Optional[int] = None
    ) -> Optional[Appointment]:
        """
        Find the pending or confirmed appointment holding a slot.

        Args:
            doctor_id: Doctor whose slot is checked
            on: Appointment date
            time: Zero-padded HH:MM
            exclude_id: Appointment to ignore, used when it is the one being moved

        Returns:
            The occupying appointment, or None if the slot is free
        """
        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.date == on,
            Appointment.time == time,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    def count_active_appointments(self, doctor_id: int, from_date: Optional[date] = None) -> int:
        """Count pending or confirmed appointments for a doctor, optionally from a date on."""
        query = self.db.query(func.count(Appointment.id)).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
        if from_date is not None:
            query = query.filter(Appointment.date >= from_date)
        return query.scalar() or 0

    def booked_times(self, doctor_id: int, on: date) -> List[str]:
        rows = (
            self.db.query(Appointment.time)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.date == on,
                Appointment.status.in_(ACTIVE_STATUSES)
            )
            .order_by(Appointment.time)
            .all()
        )
        return [row[0] for row in rows]

    # Writes

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        """
        Persist a new appointment.

        Raises:
            SlotTakenException: If another active appointment won the slot
            ServiceUnavailableException: If the database is unreachable
        """
        self.db.add(appointment)
        self._commit()
        self.db.refresh(appointment)
        return appointment

    def update_appointment(self, appointment: Appointment) -> Appointment:
        """
        Persist changes to an existing appointment.

        Raises:
            SlotTakenException: If a reschedule collides with another active appointment
            ServiceUnavailableException: If the database is unreachable
        """
        self._commit()
        self.db.refresh(appointment)
        return appointment

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _is_slot_violation(e):
                logger.warning(f"Slot uniqueness violation on commit: {str(e.orig)}")
                raise SlotTakenException()
            raise
        except OperationalError as e:
            self.db.rollback()
            logger.error(f"Database unavailable while saving appointment: {str(e)}")
            raise ServiceUnavailableException()

    # Read paths

    def list_query(
        self,
        user_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        upcoming_from: Optional[date] = None,
        sort: str = "date",
        order: str = "desc"
    ) -> Query:
        """Build the filtered, ordered query behind the appointment list endpoints."""
        query = self.db.query(Appointment).options(
            joinedload(Appointment.user), joinedload(Appointment.doctor)
        )

        if user_id is not None:
            query = query.filter(Appointment.user_id == user_id)
        query = self._scoped(query, doctor_id, date_from, date_to)
        if status is not None:
            query = query.filter(Appointment.status == status)
        if upcoming_from is not None:
            query = query.filter(
                Appointment.date >= upcoming_from,
                Appointment.status.in_(ACTIVE_STATUSES)
            )

        sort_column = getattr(Appointment, sort)
        if order == "desc":
            query = query.order_by(sort_column.desc(), Appointment.time.desc())
        else:
            query = query.order_by(sort_column.asc(), Appointment.time.asc())
        return query

    def upcoming(self, start: date, end: date) -> List[Appointment]:
        """Active appointments dated between start and end inclusive, soonest first."""
        return (
            self.db.query(Appointment)
            .options(joinedload(Appointment.user), joinedload(Appointment.doctor))
            .filter(
                and_(Appointment.date >= start, Appointment.date <= end),
                Appointment.status.in_(ACTIVE_STATUSES)
            )
            .order_by(Appointment.date.asc(), Appointment.time.asc())
            .all()
        )

    @staticmethod
    def _scoped(
        query: Query,
        doctor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> Query:
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if date_from is not None:
            query = query.filter(Appointment.date >= date_from)
        if date_to is not None:
            query = query.filter(Appointment.date <= date_to)
        return query

    def status_breakdown(
        self,
        doctor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> Dict[str, Dict[str, object]]:
        """Count and fee total per status, optionally for one doctor and a date range."""
        query = self.db.query(
            Appointment.status,
            func.count(Appointment.id),
            func.coalesce(func.sum(Appointment.consultation_fee), 0)
        )
        query = self._scoped(query, doctor_id, date_from, date_to)
        rows = query.group_by(Appointment.status).all()

        breakdown = {s.value: {"count": 0, "total_fees": Decimal("0")} for s in AppointmentStatus}
        for row_status, count, fees in rows:
            breakdown[AppointmentStatus(row_status).value] = {
                "count": count,
                "total_fees": Decimal(str(fees))
            }
        return breakdown

    def count_upcoming(
        self,
        today: date,
        doctor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> int:
        query = self.db.query(func.count(Appointment.id)).filter(
            Appointment.date >= today,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
        query = self._scoped(query, doctor_id, date_from, date_to)
        return query.scalar() or 0


class EmailSentRecorder:
    """
    Marks an appointment's email as sent once its notice has been delivered.

    Delivery runs after the request's session is gone, so each update opens
    a short session of its own. A failed update is logged and dropped; it
    never reaches the booking that queued the email.

    Args:
        session_factory: Callable returning a new Session, e.g. SessionLocal
    """

    EVENTS = frozenset({"booked", "rescheduled"})

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def __call__(self, event: str, notice: AppointmentNotice) -> None:
        if event not in self.EVENTS:
            return
        db = self.session_factory()
        try:
            db.query(Appointment).filter(Appointment.id == notice.appointment_id).update(
                {Appointment.email_sent: True}, synchronize_session=False
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not mark email sent for appointment {notice.appointment_id}: {str(e)}")
        finally:
            db.close()
