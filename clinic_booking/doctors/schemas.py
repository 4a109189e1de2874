"""
Doctor Schemas - Pydantic models for doctor data validation and serialization.

This module defines the schemas used for doctor creation, updates and responses.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from datetime import date, datetime
from decimal import Decimal
from .availability import Weekday, normalize_time, parse_time, InvalidTimeFormat
from .models import Specialty

ZIP_CODE_PATTERN = r"^\d{5}(-\d{4})?$"
PHONE_PATTERN = r"^\+?[\d\s\-\(\)]{10,}$"

class AvailabilitySlotSchema(BaseModel):
    """
    Schema for a weekly availability interval

    Fields:
    - day: Day of the week
    - start_time: Start time in 24-hour format (HH:MM)
    - end_time: End time in 24-hour format (HH:MM), exclusive
    """
    day: Weekday
    start_time: str = Field(..., description="Start time in 24-hour format (HH:MM)")
    end_time: str = Field(..., description="End time in 24-hour format (HH:MM)")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Validate time format is HH:MM and store it zero-padded"""
        try:
            return normalize_time(v)
        except InvalidTimeFormat:
            raise ValueError("Time must be in HH:MM format")

    @model_validator(mode="after")
    def validate_end_after_start(self):
        """Validate end time is after start time"""
        if parse_time(self.end_time) <= parse_time(self.start_time):
            raise ValueError("End time must be after start time")
        return self

    model_config = ConfigDict(
        json_schema_extra={"example": {"day": "Monday", "start_time": "09:00", "end_time": "17:00"}}
    )

class DoctorBase(BaseModel):
    """
    Fields shared by doctor creation and responses

    Fields:
    - name: Doctor's full name
    - specialty: Medical specialty
    - qualifications: Degrees and certifications
    - experience: Years of experience
    - hospital, address, city, state, zip_code: Practice location
    - phone, email: Contact details
    - consultation_fee: Current consultation fee
    """
    name: str = Field(..., min_length=2, max_length=100)
    specialty: Specialty
    qualifications: str = Field(..., min_length=1, max_length=200)
    experience: int = Field(..., ge=0)
    hospital: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., pattern=ZIP_CODE_PATTERN)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    consultation_fee: Decimal = Field(..., ge=0, decimal_places=2)

class DoctorCreate(DoctorBase):
    """
    Doctor Creation Schema - Used by admins to add a doctor

    Requires at least one availability slot.
    """
    email: EmailStr
    availability: List[AvailabilitySlotSchema] = Field(..., min_length=1)

class DoctorUpdate(BaseModel):
    """
    Doctor Update Schema - Every field optional; rating and reviews are not editable
    """
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    specialty: Optional[Specialty] = None
    qualifications: Optional[str] = Field(None, min_length=1, max_length=200)
    experience: Optional[int] = Field(None, ge=0)
    availability: Optional[List[AvailabilitySlotSchema]] = Field(None, min_length=1)
    hospital: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = Field(None, min_length=1)
    zip_code: Optional[str] = Field(None, pattern=ZIP_CODE_PATTERN)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    consultation_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    is_active: Optional[bool] = None

class DoctorResponse(DoctorBase):
    """
    Doctor Response Schema - Used when returning doctor data
    """
    id: int
    email: str
    availability: List[AvailabilitySlotSchema]
    rating: float
    total_reviews: int
    is_active: bool
    full_address: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DoctorSummary(BaseModel):
    """Doctor display fields embedded in appointment responses"""
    id: int
    name: str
    specialty: Specialty
    hospital: str
    phone: str

    model_config = ConfigDict(from_attributes=True)

class DoctorSearchParams(BaseModel):
    """
    Doctor Search Parameters Schema - Used for filtering doctor lists

    Fields:
    - search: Free text matched against name, specialty and hospital
    - specialty: Filter by specialty
    - city: Filter by city (substring, case-insensitive)
    - min_fee / max_fee: Consultation fee range
    - is_active: Active flag (defaults to active doctors only)
    - sort / order: Sort field and direction
    """
    search: Optional[str] = Field(None, min_length=1, max_length=100)
    specialty: Optional[Specialty] = None
    city: Optional[str] = None
    min_fee: Optional[Decimal] = Field(None, ge=0)
    max_fee: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    sort: str = Field("name", pattern=r"^(name|specialty|rating|experience|consultation_fee|created_at)$")
    order: str = Field("asc", pattern=r"^(asc|desc)$")

class SpecialtyCount(BaseModel):
    specialty: Specialty
    count: int

class DoctorAvailabilityResponse(BaseModel):
    """
    Availability of one doctor on one calendar date

    Fields:
    - available: Whether the doctor works on that weekday at all
    - day: Weekday of the requested date
    - slots: The doctor's intervals for that weekday
    - booked_times: Times already taken by active appointments
    """
    doctor_id: int
    date: date
    day: Weekday
    available: bool
    slots: List[AvailabilitySlotSchema] = Field(default_factory=list)
    booked_times: List[str] = Field(default_factory=list)
    consultation_fee: Decimal
    message: Optional[str] = None

class DoctorStatsResponse(BaseModel):
    """Appointment counts for one doctor"""
    doctor_id: int
    name: str
    specialty: Specialty
    rating: float
    total_reviews: int
    total_appointments: int
    completed_appointments: int
    upcoming_appointments: int
    by_status: Dict[str, int]
