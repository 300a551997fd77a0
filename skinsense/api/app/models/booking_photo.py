from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, enum_values, utcnow


class PhotoKind(str, enum.Enum):
    BEFORE = "before"
    AFTER = "after"


class BookingPhoto(Base, TimestampMixin):
    """Reference to a treatment photo stored by the image host."""

    __tablename__ = "booking_photos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), index=True
    )
    kind: Mapped[PhotoKind] = mapped_column(
        Enum(PhotoKind, name="photo_kind", values_callable=enum_values), nullable=False
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    public_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    taken_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    booking = relationship("Booking", back_populates="photos")
