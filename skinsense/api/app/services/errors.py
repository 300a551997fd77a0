"""User-facing failures raised by the booking policy."""

from __future__ import annotations


class BookingError(ValueError):
    """Base class; the message is shown to the end user verbatim."""

    default_message = "Booking request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ServiceUnavailable(BookingError):
    default_message = "Service not found or not available"


class SlotConflict(BookingError):
    default_message = "Selected time slot is not available"


class InsufficientNotice(BookingError):
    default_message = "This service requires more advance notice"


class InvalidTransition(BookingError):
    default_message = "Booking is already completed or cancelled"


class PastAppointment(BookingError):
    default_message = "Appointment date must be in the future"


__all__ = [
    "BookingError",
    "InsufficientNotice",
    "InvalidTransition",
    "PastAppointment",
    "ServiceUnavailable",
    "SlotConflict",
]
