"""
Doctor Router - API endpoints for browsing and managing doctors.

Browsing is public; creating, updating, retiring and stats are admin only.
"""
from typing import List, Optional
from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth.models import User
from ..auth.dependencies import require_admin
from ..core.clock import Clock
from ..core.pagination import PageParams, PageResponse
from ..appointments.dependencies import get_clock
from .models import Specialty
from .schemas import (
    DoctorCreate,
    DoctorUpdate,
    DoctorResponse,
    DoctorSearchParams,
    DoctorAvailabilityResponse,
    DoctorStatsResponse,
    SpecialtyCount,
)
from .service import (
    create_doctor,
    update_doctor,
    get_doctor,
    list_doctors,
    list_specialties,
    popular_doctors,
    get_doctor_availability,
    get_doctor_stats,
    delete_doctor,
)

router = APIRouter()

@router.get("", response_model=PageResponse[DoctorResponse])
def list_doctors_route(
    search: Optional[str] = Query(None, min_length=1, max_length=100, description="Search name, specialty or hospital"),
    specialty: Optional[Specialty] = Query(None, description="Filter by specialty"),
    city: Optional[str] = Query(None, description="Filter by city"),
    min_fee: Optional[Decimal] = Query(None, ge=0, description="Minimum consultation fee"),
    max_fee: Optional[Decimal] = Query(None, ge=0, description="Maximum consultation fee"),
    is_active: bool = Query(True, description="Active (default) or retired doctors"),
    sort: str = Query("name", pattern=r"^(name|specialty|rating|experience|consultation_fee|created_at)$"),
    order: str = Query("asc", pattern=r"^(asc|desc)$"),
    page_params: PageParams = Depends(),
    db: Session = Depends(get_db)
):
    """
    Get a paginated list of doctors

    This endpoint allows anyone to browse doctors with optional filtering.
    """
    search_params = DoctorSearchParams(
        search=search,
        specialty=specialty,
        city=city,
        min_fee=min_fee,
        max_fee=max_fee,
        is_active=is_active,
        sort=sort,
        order=order
    )
    return list_doctors(db, page_params, search_params)

@router.get("/specialties", response_model=List[SpecialtyCount])
def list_specialties_route(db: Session = Depends(get_db)):
    """
    Specialties with at least one active doctor
    """
    return list_specialties(db)

@router.get("/popular", response_model=List[DoctorResponse])
def popular_doctors_route(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """
    Highest rated active doctors
    """
    return popular_doctors(db, limit)

@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def create_doctor_route(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Add a doctor (admin only)
    """
    return create_doctor(db, doctor_data, current_user.id)

@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor_route(doctor_id: int, db: Session = Depends(get_db)):
    """
    Get a doctor by ID

    Retired doctors are reported as unavailable.
    """
    return get_doctor(db, doctor_id)

@router.get("/{doctor_id}/availability", response_model=DoctorAvailabilityResponse)
def doctor_availability_route(
    doctor_id: int,
    on: date = Query(..., alias="date", description="Date to check (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    The doctor's hours and booked times for a date
    """
    return get_doctor_availability(db, doctor_id, on, clock.today())

@router.get("/{doctor_id}/stats", response_model=DoctorStatsResponse)
def doctor_stats_route(
    doctor_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_admin)
):
    """
    Appointment statistics for a doctor (admin only)
    """
    return get_doctor_stats(db, doctor_id, clock.today())

@router.put("/{doctor_id}", response_model=DoctorResponse)
def update_doctor_route(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_admin)
):
    """
    Update a doctor (admin only)

    Rating and review counts cannot be changed here. Setting is_active to
    false is refused while the doctor has upcoming appointments.
    """
    return update_doctor(db, doctor_id, doctor_data, clock.today(), current_user.id)

@router.delete("/{doctor_id}")
def delete_doctor_route(
    doctor_id: int,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_admin)
):
    """
    Retire a doctor (admin only)

    Rejected while the doctor has pending or confirmed appointments dated
    today or later. The record is kept and marked inactive.
    """
    doctor = delete_doctor(db, doctor_id, clock.today(), current_user.id, request=request)
    return {"message": "Doctor deactivated successfully", "doctor_id": doctor.id, "is_active": doctor.is_active}
