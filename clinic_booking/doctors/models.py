"""
Doctor Model - Stores doctor listings and their weekly availability.

Doctors are managed by admins and are never hard-deleted: a retired doctor is
marked inactive so existing appointments keep their reference.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Numeric, Float, Enum, func
from sqlalchemy.orm import relationship
from datetime import date, datetime, timezone
from typing import List
import enum
from ..database import Base
from .availability import AvailabilitySlot, day_of_week, is_open_at

class Specialty(str, enum.Enum):
    """Medical specialties a doctor can be listed under"""
    CARDIOLOGY = "Cardiology"
    DERMATOLOGY = "Dermatology"
    ENDOCRINOLOGY = "Endocrinology"
    GASTROENTEROLOGY = "Gastroenterology"
    GENERAL_MEDICINE = "General Medicine"
    GYNECOLOGY = "Gynecology"
    NEUROLOGY = "Neurology"
    ONCOLOGY = "Oncology"
    ORTHOPEDICS = "Orthopedics"
    PEDIATRICS = "Pediatrics"
    PSYCHIATRY = "Psychiatry"
    PULMONOLOGY = "Pulmonology"
    RADIOLOGY = "Radiology"
    SURGERY = "Surgery"
    UROLOGY = "Urology"
    OTHER = "Other"

class Doctor(Base):
    """
    Doctor Model - Stores doctor information

    Fields:
    - id: Primary key for doctor
    - name: Doctor's full name
    - specialty: One of the Specialty values
    - qualifications: Degrees and certifications
    - experience: Years of experience
    - availability: Weekly open hours, list of {day, start_time, end_time} (JSON)
    - hospital, address, city, state, zip_code: Practice location
    - phone, email: Contact details (email is unique)
    - consultation_fee: Current fee, copied onto each new appointment
    - rating, total_reviews: Review summary (not editable through updates)
    - is_active: False once the doctor has been retired by an admin
    - created_at / updated_at: Timestamps
    """
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    specialty = Column(
        Enum(Specialty, name="specialty", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True
    )
    qualifications = Column(String(200), nullable=False)
    experience = Column(Integer, nullable=False, default=0)
    availability = Column(JSON, nullable=False, default=list)
    hospital = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False, index=True)
    state = Column(String, nullable=False)
    zip_code = Column(String(10), nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    consultation_fee = Column(Numeric(10, 2), nullable=False)
    rating = Column(Float, nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="doctor")

    def __repr__(self):
        """String representation of the Doctor model"""
        return f"<Doctor(id={self.id}, name='{self.name}', specialty='{self.specialty}')>"

    @property
    def availability_slots(self) -> List[AvailabilitySlot]:
        """Weekly availability as typed slots"""
        return [AvailabilitySlot.from_dict(slot) for slot in (self.availability or [])]

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} {self.zip_code}"

    def is_open_at(self, on: date, time: str) -> bool:
        """
        Check whether the doctor's weekly hours cover a date and time

        Args:
            on: Calendar date being requested
            time: Requested time as HH:MM
        """
        return is_open_at(self.availability_slots, day_of_week(on), time)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = datetime.now(timezone.utc)
