"""
Appointment Router - API endpoints for booking and managing appointments.

Fixed paths (/stats, /upcoming, /reminders, /notifications/failures) are
declared before /{appointment_id} so they are not captured by it.
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query, status

from ..config import settings
from ..auth.models import User
from ..auth.dependencies import get_current_active_user, require_admin
from ..core.pagination import PageParams, PageResponse
from ..notifications.outbox import NotificationFailureLog
from .models import AppointmentStatus
from .schemas import (
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentCancelRequest,
    AppointmentRescheduleRequest,
    AppointmentResponse,
    AppointmentStatsResponse,
    ReminderBatchResponse,
    NotificationFailureResponse,
)
from .service import AppointmentService
from .dependencies import get_appointment_service, get_failure_log

router = APIRouter()

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    payload: AppointmentCreate,
    current_user: User = Depends(get_current_active_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Book an appointment

    The slot must fall inside one of the doctor's availability intervals and
    must not already be held by a pending or confirmed appointment.
    """
    appointment = service.book_appointment(current_user, payload)
    return service.to_response(appointment)

@router.get("", response_model=PageResponse[AppointmentResponse])
def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status", description="Filter by status"),
    upcoming: bool = Query(False, description="Only pending or confirmed appointments from today on"),
    doctor_id: Optional[int] = Query(None, description="Filter by doctor (admin only)"),
    date_from: Optional[date] = Query(None, description="Earliest date (admin only)"),
    date_to: Optional[date] = Query(None, description="Latest date (admin only)"),
    sort: str = Query("date", pattern=r"^(date|created_at|status)$"),
    order: str = Query("desc", pattern=r"^(asc|desc)$"),
    page_params: PageParams = Depends(),
    current_user: User = Depends(get_current_active_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    List appointments

    Users get their own appointments; admins get everyone's.
    """
    return service.list_appointments(
        current_user,
        page_params,
        status=status_filter,
        upcoming=upcoming,
        doctor_id=doctor_id,
        date_from=date_from,
        date_to=date_to,
        sort=sort,
        order=order,
    )

@router.get("/stats", response_model=AppointmentStatsResponse)
def appointment_stats(
    doctor_id: Optional[int] = Query(None, description="Only this doctor's appointments"),
    date_from: Optional[date] = Query(None, description="Earliest appointment date"),
    date_to: Optional[date] = Query(None, description="Latest appointment date"),
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Appointment statistics (admin only)

    Filters narrow every figure: total, upcoming, revenue and the per-status
    breakdown.
    """
    return service.get_stats(doctor_id=doctor_id, date_from=date_from, date_to=date_to)

@router.get("/upcoming", response_model=List[AppointmentResponse])
def upcoming_appointments(
    days: int = Query(settings.upcoming_window_days, ge=1, le=90),
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Pending and confirmed appointments in the next ``days`` days (admin only)
    """
    return [service.to_response(a) for a in service.get_upcoming(days)]

@router.post("/reminders", response_model=ReminderBatchResponse)
def send_reminders(
    days: int = Query(settings.reminder_window_days, ge=1, le=30),
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Queue reminder emails for upcoming appointments (admin only)
    """
    return ReminderBatchResponse(days=days, queued=service.send_reminders(days))

@router.get("/notifications/failures", response_model=List[NotificationFailureResponse])
def notification_failures(
    current_user: User = Depends(require_admin),
    failure_log: NotificationFailureLog = Depends(get_failure_log)
):
    """
    Recent notifications that could not be delivered, newest first (admin only)
    """
    return [failure.model_dump() for failure in failure_log.entries()]

@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_active_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Get an appointment

    Only the owner or an admin can view it.
    """
    return service.to_response(service.get_appointment(appointment_id, current_user))

@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Change an appointment's status (admin only)

    Allowed: pending to confirmed or cancelled, confirmed to completed or
    cancelled. Cancelling requires a cancellation_reason.
    """
    return service.to_response(service.update_status(appointment_id, current_user, payload))

@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    payload: AppointmentCancelRequest,
    current_user: User = Depends(get_current_active_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Cancel an appointment

    Must be at least the configured number of hours (24 by default) before
    the appointment time.
    """
    appointment = service.cancel(appointment_id, current_user, payload.cancellation_reason)
    return service.to_response(appointment)

@router.patch("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    payload: AppointmentRescheduleRequest,
    current_user: User = Depends(get_current_active_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """
    Move an appointment to a new date and time
    """
    return service.to_response(service.reschedule(appointment_id, current_user, payload))
