"""
Appointment booking and conflict resolution.

This module provides the booking core:
- Slot conflict checking against weekly availability and existing bookings
- Appointment lifecycle state machine
- Booking, reschedule and cancellation workflows
"""
