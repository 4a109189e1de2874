"""
Appointment Model - Stores appointment information and scheduling.

An appointment occupies the (doctor_id, date, time) slot while it is pending
or confirmed. The partial unique index below is what actually prevents two
active appointments on the same slot; application-level checks only give an
earlier and friendlier rejection.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, ForeignKey, Enum, JSON, Numeric, Index, text, func, false
)
from sqlalchemy.orm import relationship
from datetime import datetime, timedelta
import enum
from ..database import Base
from ..doctors.availability import parse_time

class AppointmentStatus(str, enum.Enum):
    """Enum for appointment status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

class PaymentStatus(str, enum.Enum):
    """Enum for payment status"""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"

class CancelledBy(str, enum.Enum):
    """Who cancelled an appointment"""
    USER = "user"
    DOCTOR = "doctor"
    ADMIN = "admin"

# Statuses that occupy a slot
ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

_ACTIVE_SLOT_PREDICATE = "status IN ('pending', 'confirmed')"

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Appointment(Base):
    """
    Appointment Model - Stores appointment information

    Fields:
    - id: Primary key for appointment
    - user_id: Foreign key to the booking User
    - doctor_id: Foreign key to Doctor
    - date: Calendar date of the appointment (clinic timezone)
    - time: Start time as zero-padded HH:MM
    - status: pending -> confirmed/cancelled, confirmed -> completed/cancelled
    - reason: Reason for the visit (required, up to 500 characters)
    - notes: Additional notes (up to 1000 characters)
    - symptoms: List of symptom strings
    - consultation_fee: Doctor's fee at booking time
    - payment_status: pending, paid or refunded
    - cancellation_reason / cancelled_by / cancelled_at: Set only when cancelled
    - confirmed_at / completed_at: Set when the status is reached
    - email_sent: Whether the booking (or latest reschedule) email was delivered
    - created_at / updated_at: Timestamps
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="RESTRICT"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    status = Column(
        Enum(AppointmentStatus, name="appointment_status", values_callable=_enum_values),
        nullable=False,
        default=AppointmentStatus.PENDING
    )
    reason = Column(String(500), nullable=False)
    notes = Column(String(1000), nullable=True)
    symptoms = Column(JSON, nullable=False, default=list)
    consultation_fee = Column(Numeric(10, 2), nullable=False)
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.PENDING
    )
    cancellation_reason = Column(String(200), nullable=True)
    cancelled_by = Column(
        Enum(CancelledBy, name="cancelled_by", values_callable=_enum_values),
        nullable=True
    )
    cancelled_at = Column(DateTime, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    email_sent = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        # At most one active appointment per doctor slot
        Index(
            "uq_appointments_active_slot",
            "doctor_id", "date", "time",
            unique=True,
            postgresql_where=text(_ACTIVE_SLOT_PREDICATE),
            sqlite_where=text(_ACTIVE_SLOT_PREDICATE),
        ),
        Index("ix_appointments_user_date", "user_id", "date"),
        Index("ix_appointments_doctor_date", "doctor_id", "date"),
        Index("ix_appointments_status", "status"),
    )

    # Relationships
    user = relationship("User", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")

    def __repr__(self):
        """String representation of the Appointment model"""
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, user_id={self.user_id}, "
            f"date='{self.date}', time='{self.time}', status='{self.status}')>"
        )

    @property
    def appointment_datetime(self) -> datetime:
        """Date and time combined, in the clinic timezone"""
        minutes = parse_time(self.time)
        return datetime(self.date.year, self.date.month, self.date.day, minutes // 60, minutes % 60)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_upcoming(self, now: datetime) -> bool:
        """Scheduled in the future and still pending or confirmed"""
        return self.is_active and self.appointment_datetime > now

    def can_be_cancelled(self, now: datetime, window_hours: int = 24) -> bool:
        """
        Pending or confirmed, and at least ``window_hours`` away

        The boundary is inclusive: exactly 24 hours of lead time is enough.
        """
        return self.is_active and self.appointment_datetime - now >= timedelta(hours=window_hours)
