"""SQLAlchemy models for the SkinSense API."""

from app.models.audit_log import AuditLog
from app.models.booking import (
    RELEASED_STATUSES,
    TERMINAL_STATUSES,
    Booking,
    BookingSource,
    BookingStatus,
    CancellationRecord,
    PaymentStatus,
    ReschedulingRecord,
)
from app.models.booking_photo import BookingPhoto, PhotoKind
from app.models.invoice_counter import InvoiceCounter
from app.models.message_log import MessageLog
from app.models.service import Service, ServiceCategory
from app.models.user import User, UserRole

__all__ = [
    "AuditLog",
    "Booking",
    "BookingPhoto",
    "BookingSource",
    "BookingStatus",
    "CancellationRecord",
    "InvoiceCounter",
    "MessageLog",
    "PaymentStatus",
    "PhotoKind",
    "RELEASED_STATUSES",
    "ReschedulingRecord",
    "Service",
    "ServiceCategory",
    "TERMINAL_STATUSES",
    "User",
    "UserRole",
]
