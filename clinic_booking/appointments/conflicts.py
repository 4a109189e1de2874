"""
Slot conflict checker.

Combines the doctor's weekly availability with existing bookings to accept or
reject a requested (doctor, date, time). The check is an early, read-only
rejection; the partial unique index on appointments still decides races.
"""
from datetime import date
from typing import Optional
import logging

from ..doctors.models import Doctor
from ..doctors.availability import day_of_week, normalize_time
from .repository import AppointmentRepository
from .exceptions import DoctorUnavailableException, SlotTakenException

# Set up logging
logger = logging.getLogger(__name__)


class SlotConflictChecker:
    def __init__(self, repository: AppointmentRepository):
        self.repository = repository

    def check_slot(
        self,
        doctor: Doctor,
        on: date,
        time: str,
        exclude_appointment_id: Optional[int] = None
    ) -> None:
        """
        Authorize a requested slot or raise.

        Args:
            doctor: The doctor being booked
            on: Requested calendar date
            time: Requested time as HH:MM
            exclude_appointment_id: Appointment that may already hold the slot (reschedule)

        Raises:
            DoctorUnavailableException: If no availability slot covers the day and time
            SlotTakenException: If another pending or confirmed appointment holds the slot
            InvalidTimeFormat: If the time is not HH:MM
        """
        time = normalize_time(time)
        weekday = day_of_week(on)

        if not doctor.is_open_at(on, time):
            logger.warning(f"Doctor {doctor.id} not available on {weekday.value} {on} at {time}")
            raise DoctorUnavailableException(
                f"Doctor is not available on {weekday.value} at {time}"
            )

        existing = self.repository.find_active_appointment(
            doctor.id, on, time, exclude_id=exclude_appointment_id
        )
        if existing:
            logger.warning(
                f"Slot {doctor.id}/{on}/{time} already held by appointment {existing.id}"
            )
            raise SlotTakenException()
