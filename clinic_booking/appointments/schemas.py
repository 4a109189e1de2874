"""
Appointment Schemas - Pydantic models for appointment requests and responses.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
from decimal import Decimal

from ..doctors.availability import normalize_time, InvalidTimeFormat
from ..doctors.schemas import DoctorSummary
from .models import Appointment, AppointmentStatus, PaymentStatus, CancelledBy


def _validated_time(v: str) -> str:
    try:
        return normalize_time(v)
    except InvalidTimeFormat:
        raise ValueError("Time must be in HH:MM format")


class AppointmentCreate(BaseModel):
    """
    Appointment Booking Schema

    Fields:
    - doctor_id: Doctor being booked
    - date: Appointment date (today or later)
    - time: Start time in 24-hour format (HH:MM)
    - reason: Reason for the visit
    - notes: Optional notes for the doctor
    - symptoms: Optional list of symptoms
    """
    doctor_id: int = Field(..., gt=0)
    date: date
    time: str = Field(..., description="Start time in 24-hour format (HH:MM)")
    reason: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)
    symptoms: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validated_time(v)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason for visit is required")
        return v

    @field_validator("symptoms")
    @classmethod
    def clean_symptoms(cls, v: List[str]) -> List[str]:
        return [s.strip() for s in v if s and s.strip()]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "doctor_id": 1,
                "date": "2030-01-07",
                "time": "10:00",
                "reason": "Annual check-up",
                "symptoms": ["fatigue"]
            }
        }
    )


class AppointmentStatusUpdate(BaseModel):
    """
    Status change requested by an admin

    cancellation_reason is required when status is cancelled; cancelled_by
    defaults to admin.
    """
    status: AppointmentStatus
    cancellation_reason: Optional[str] = Field(None, max_length=200)
    cancelled_by: Optional[CancelledBy] = None


class AppointmentCancelRequest(BaseModel):
    cancellation_reason: str = Field(..., min_length=1, max_length=200)


class AppointmentRescheduleRequest(BaseModel):
    """
    New slot for an existing appointment

    Fields:
    - date: New date (today or later)
    - time: New time (HH:MM)
    - reason: Optional replacement for the visit reason
    """
    date: date
    time: str
    reason: Optional[str] = Field(None, min_length=1, max_length=500)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _validated_time(v)


class UserSummary(BaseModel):
    """Patient display fields embedded in appointment responses"""
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class AppointmentResponse(BaseModel):
    """
    Appointment Response Schema

    Includes the derived appointment_datetime, is_upcoming and
    can_be_cancelled flags, computed against the clinic clock at response time.
    """
    id: int
    user_id: int
    doctor_id: int
    date: date
    time: str
    status: AppointmentStatus
    reason: str
    notes: Optional[str] = None
    symptoms: List[str] = Field(default_factory=list)
    consultation_fee: Decimal
    payment_status: PaymentStatus
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[CancelledBy] = None
    cancelled_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    email_sent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    appointment_datetime: datetime
    is_upcoming: bool
    can_be_cancelled: bool

    user: Optional[UserSummary] = None
    doctor: Optional[DoctorSummary] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_appointment(cls, appointment: Appointment, now: datetime, window_hours: int) -> "AppointmentResponse":
        """Build a response, filling in the fields that depend on the current time"""
        data = {
            column.name: getattr(appointment, column.name)
            for column in Appointment.__table__.columns
        }
        data.update(
            appointment_datetime=appointment.appointment_datetime,
            is_upcoming=appointment.is_upcoming(now),
            can_be_cancelled=appointment.can_be_cancelled(now, window_hours),
            user=UserSummary.model_validate(appointment.user) if appointment.user else None,
            doctor=DoctorSummary.model_validate(appointment.doctor) if appointment.doctor else None,
        )
        return cls(**data)


class StatusBreakdown(BaseModel):
    count: int
    total_fees: Decimal


class AppointmentStatsResponse(BaseModel):
    """
    Appointment statistics for admins

    Fields:
    - total: All appointments in scope (every doctor and date unless filtered)
    - upcoming: Pending or confirmed appointments dated today or later
    - revenue: Sum of fee snapshots of completed appointments
    - by_status: Count and fee total per status
    """
    total: int
    upcoming: int
    revenue: Decimal
    by_status: Dict[str, StatusBreakdown]


class ReminderBatchResponse(BaseModel):
    days: int
    queued: int


class NotificationFailureResponse(BaseModel):
    """A notification that could not be delivered"""
    event: str
    appointment_id: int
    recipient: str
    error: str
    failed_at: datetime
