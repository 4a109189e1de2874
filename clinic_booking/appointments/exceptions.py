"""
Booking-specific exceptions.

Each class has a stable ``kind`` that the API returns next to the message.
"""
from fastapi import status
from ..exceptions import AppException

class DoctorUnavailableException(AppException):
    """Doctor is inactive, or the requested time is outside every availability slot."""
    kind = "DoctorUnavailable"

    def __init__(self, detail: str = "Doctor is not available at the requested time"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class SlotTakenException(AppException):
    """An active appointment already occupies the (doctor, date, time) slot."""
    kind = "SlotTaken"

    def __init__(self, detail: str = "Time slot is already booked"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class InvalidTransitionException(AppException):
    """The requested status change is not allowed from the current status."""
    kind = "InvalidTransition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change status from {current} to {requested}"
        )
        self.current = current
        self.requested = requested

class InvalidStateException(AppException):
    """The appointment's status does not allow the requested operation."""
    kind = "InvalidState"

    def __init__(self, detail: str = "Only pending or confirmed appointments can be rescheduled"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class MissingCancellationReasonException(AppException):
    """Cancellation attempted without a valid reason or canceller."""
    kind = "MissingCancellationReason"

    def __init__(self, detail: str = "Cancellation reason is required when cancelling appointment"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class CannotCancelException(AppException):
    """Cancellation inside the protection window or from a terminal status."""
    kind = "CannotCancel"

    def __init__(self, detail: str = "Appointment cannot be cancelled (must be at least 24 hours before appointment time)"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class HasActiveAppointmentsException(AppException):
    """A doctor cannot be retired while active future appointments exist."""
    kind = "HasActiveAppointments"

    def __init__(self, count: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot delete doctor with active appointments ({count} remaining)"
        )
        self.count = count
