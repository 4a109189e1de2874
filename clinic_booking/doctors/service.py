"""
Doctor Service - Business logic for doctor listings.

This module provides service functions for admin CRUD on doctors, browsing
and search, per-date availability and the soft-delete workflow.
"""
from typing import List, Optional
from datetime import date
from fastapi import Request
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session
import logging

from ..auth.exceptions import EmailAlreadyExistsException
from ..core.audit_service import create_audit_log
from ..core.pagination import PageParams, PageResponse, paginate
from ..exceptions import NotFoundException, ValidationFailedException
from ..appointments.models import AppointmentStatus
from ..appointments.repository import AppointmentRepository
from ..appointments.exceptions import DoctorUnavailableException, HasActiveAppointmentsException
from .availability import day_of_week, slots_for_day
from .models import Doctor
from .schemas import (
    DoctorCreate,
    DoctorUpdate,
    DoctorResponse,
    DoctorSearchParams,
    DoctorAvailabilityResponse,
    DoctorStatsResponse,
    SpecialtyCount,
)

# Set up logging
logger = logging.getLogger(__name__)

def _ensure_email_free(db: Session, email: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Doctor).filter(func.lower(Doctor.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Doctor.id != exclude_id)
    if query.first():
        raise EmailAlreadyExistsException("Doctor with this email already exists")

def _load_doctor(db: Session, doctor_id: int, lock: bool = False) -> Doctor:
    query = db.query(Doctor).filter(Doctor.id == doctor_id)
    if lock:
        query = query.with_for_update()
    doctor = query.first()
    if not doctor:
        raise NotFoundException("Doctor not found")
    return doctor

def _ensure_no_active_appointments(db: Session, doctor: Doctor, today: date) -> None:
    """
    Refuse to retire a doctor who still has bookings to honour.

    The caller must hold the doctor row lock from ``_load_doctor(lock=True)``
    so no booking can commit between this count and the deactivation.
    """
    active = AppointmentRepository(db).count_active_appointments(doctor.id, from_date=today)
    if active > 0:
        logger.warning(f"Refusing to retire doctor {doctor.id}: {active} active appointment(s)")
        raise HasActiveAppointmentsException(active)

def create_doctor(db: Session, doctor_data: DoctorCreate, current_user_id: int) -> Doctor:
    """
    Create a doctor listing.

    Args:
        db: Database session
        doctor_data: Validated doctor fields, at least one availability slot
        current_user_id: ID of the admin creating the doctor

    Returns:
        Doctor: The created doctor

    Raises:
        EmailAlreadyExistsException: If another doctor uses the email
    """
    _ensure_email_free(db, doctor_data.email)

    data = doctor_data.model_dump()
    data["email"] = data["email"].lower()
    data["availability"] = [slot.model_dump(mode="json") for slot in doctor_data.availability]
    doctor = Doctor(**data, is_active=True)

    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    logger.info(f"Doctor {doctor.id} ({doctor.name}) created by user {current_user_id}")
    return doctor

def update_doctor(
    db: Session,
    doctor_id: int,
    doctor_data: DoctorUpdate,
    today: date,
    current_user_id: int
) -> Doctor:
    """
    Update a doctor listing. Only the fields that were sent are changed.

    Setting is_active to false retires the doctor under the same rule as
    delete_doctor.

    Raises:
        NotFoundException: If the doctor does not exist
        EmailAlreadyExistsException: If the new email belongs to another doctor
        HasActiveAppointmentsException: If retiring while active appointments remain
    """
    retiring = doctor_data.is_active is False
    doctor = _load_doctor(db, doctor_id, lock=retiring)
    if retiring and doctor.is_active:
        _ensure_no_active_appointments(db, doctor, today)

    update_data = doctor_data.model_dump(exclude_unset=True)
    if update_data.get("email"):
        _ensure_email_free(db, update_data["email"], exclude_id=doctor_id)
        update_data["email"] = update_data["email"].lower()
    if doctor_data.availability is not None:
        update_data["availability"] = [slot.model_dump(mode="json") for slot in doctor_data.availability]

    for field, value in update_data.items():
        if value is None:
            continue
        setattr(doctor, field, value)

    db.commit()
    db.refresh(doctor)
    logger.info(f"Doctor {doctor_id} updated by user {current_user_id}: {sorted(update_data)}")
    return doctor

def get_doctor(db: Session, doctor_id: int, include_inactive: bool = False) -> Doctor:
    """
    Get a doctor by ID.

    Args:
        db: Database session
        doctor_id: ID of the doctor
        include_inactive: Return retired doctors too (admin views)

    Raises:
        NotFoundException: If the doctor does not exist
        DoctorUnavailableException: If the doctor is retired and include_inactive is False
    """
    doctor = _load_doctor(db, doctor_id)
    if not doctor.is_active and not include_inactive:
        raise DoctorUnavailableException("Doctor is not currently available")
    return doctor

def list_doctors(db: Session, page_params: PageParams, search_params: DoctorSearchParams) -> PageResponse:
    """
    Get a paginated list of doctors with optional filtering and sorting.

    Args:
        db: Database session
        page_params: Page number and size
        search_params: Filters and sort order

    Returns:
        PageResponse of DoctorResponse
    """
    query = db.query(Doctor).filter(Doctor.is_active == search_params.is_active)

    if search_params.search:
        pattern = f"%{search_params.search}%"
        query = query.filter(
            or_(
                Doctor.name.ilike(pattern),
                cast(Doctor.specialty, String).ilike(pattern),
                Doctor.hospital.ilike(pattern)
            )
        )

    if search_params.specialty:
        query = query.filter(Doctor.specialty == search_params.specialty)

    if search_params.city:
        query = query.filter(Doctor.city.ilike(f"%{search_params.city}%"))

    if search_params.min_fee is not None:
        query = query.filter(Doctor.consultation_fee >= search_params.min_fee)

    if search_params.max_fee is not None:
        query = query.filter(Doctor.consultation_fee <= search_params.max_fee)

    sort_column = getattr(Doctor, search_params.sort)
    if search_params.order == "desc":
        query = query.order_by(sort_column.desc(), Doctor.id)
    else:
        query = query.order_by(sort_column.asc(), Doctor.id)

    return paginate(query, page_params, transform=DoctorResponse.model_validate)

def list_specialties(db: Session) -> List[SpecialtyCount]:
    """Specialties that have at least one active doctor, with counts"""
    rows = (
        db.query(Doctor.specialty, func.count(Doctor.id))
        .filter(Doctor.is_active.is_(True))
        .group_by(Doctor.specialty)
        .order_by(Doctor.specialty)
        .all()
    )
    return [SpecialtyCount(specialty=specialty, count=count) for specialty, count in rows]

def popular_doctors(db: Session, limit: int = 10) -> List[Doctor]:
    """Active doctors ordered by rating, then number of reviews"""
    return (
        db.query(Doctor)
        .filter(Doctor.is_active.is_(True))
        .order_by(Doctor.rating.desc(), Doctor.total_reviews.desc(), Doctor.id)
        .limit(limit)
        .all()
    )

def get_doctor_availability(db: Session, doctor_id: int, on: date, today: date) -> DoctorAvailabilityResponse:
    """
    The doctor's open hours and already booked times for one date.

    Args:
        db: Database session
        doctor_id: ID of the doctor
        on: Date being asked about
        today: Current clinic date

    Raises:
        NotFoundException: If the doctor does not exist
        DoctorUnavailableException: If the doctor is retired
        ValidationFailedException: If the date is in the past
    """
    if on < today:
        raise ValidationFailedException("Date cannot be in the past")

    doctor = get_doctor(db, doctor_id)
    weekday = day_of_week(on)
    slots = slots_for_day(doctor.availability_slots, weekday)

    if not slots:
        return DoctorAvailabilityResponse(
            doctor_id=doctor.id,
            date=on,
            day=weekday,
            available=False,
            consultation_fee=doctor.consultation_fee,
            message=f"Doctor is not available on {weekday.value}",
        )

    return DoctorAvailabilityResponse(
        doctor_id=doctor.id,
        date=on,
        day=weekday,
        available=True,
        slots=[slot.to_dict() for slot in slots],
        booked_times=AppointmentRepository(db).booked_times(doctor.id, on),
        consultation_fee=doctor.consultation_fee,
    )

def get_doctor_stats(db: Session, doctor_id: int, today: date) -> DoctorStatsResponse:
    """Appointment counts for one doctor (admin)"""
    doctor = _load_doctor(db, doctor_id)
    repository = AppointmentRepository(db)
    breakdown = repository.status_breakdown(doctor_id=doctor.id)
    by_status = {key: entry["count"] for key, entry in breakdown.items()}

    return DoctorStatsResponse(
        doctor_id=doctor.id,
        name=doctor.name,
        specialty=doctor.specialty,
        rating=doctor.rating,
        total_reviews=doctor.total_reviews,
        total_appointments=sum(by_status.values()),
        completed_appointments=by_status[AppointmentStatus.COMPLETED.value],
        upcoming_appointments=repository.count_upcoming(today, doctor_id=doctor.id),
        by_status=by_status,
    )

def delete_doctor(
    db: Session,
    doctor_id: int,
    today: date,
    current_user_id: int,
    request: Optional[Request] = None
) -> Doctor:
    """
    Retire a doctor. Doctors are never removed, only marked inactive.

    Args:
        db: Database session
        doctor_id: ID of the doctor
        today: Current clinic date
        current_user_id: ID of the admin
        request: Current request, for the audit entry

    Returns:
        Doctor: The deactivated doctor

    Raises:
        NotFoundException: If the doctor does not exist
        HasActiveAppointmentsException: If pending or confirmed appointments
            dated today or later still exist
    """
    doctor = _load_doctor(db, doctor_id, lock=True)
    _ensure_no_active_appointments(db, doctor, today)

    doctor.deactivate()
    db.commit()
    db.refresh(doctor)
    logger.info(f"Doctor {doctor_id} deactivated by user {current_user_id}")

    create_audit_log(
        db,
        "DOCTOR_DEACTIVATED",
        user_id=current_user_id,
        request=request,
        details={"doctor_id": doctor_id}
    )
    return doctor
