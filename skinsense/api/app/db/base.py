"""Import SQLAlchemy models for Alembic's autogenerate feature."""

from app.models.base import Base
from app.models import (  # noqa: F401
    AuditLog,
    Booking,
    BookingPhoto,
    InvoiceCounter,
    MessageLog,
    Service,
    User,
)

__all__ = [
    "Base",
    "AuditLog",
    "Booking",
    "BookingPhoto",
    "InvoiceCounter",
    "MessageLog",
    "Service",
    "User",
]
