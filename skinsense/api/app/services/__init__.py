"""Service layer utilities for the SkinSense API."""

from app.services.errors import (
    BookingError,
    InsufficientNotice,
    InvalidTransition,
    PastAppointment,
    ServiceUnavailable,
    SlotConflict,
)

__all__ = [
    "BookingError",
    "InsufficientNotice",
    "InvalidTransition",
    "PastAppointment",
    "ServiceUnavailable",
    "SlotConflict",
]
