"""
Clinic booking backend.

Users browse doctors and reserve time slots; administrators manage doctor
records and the appointment lifecycle.
"""
