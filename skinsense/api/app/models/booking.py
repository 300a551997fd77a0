from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, enum_values


class BookingStatus(str, enum.Enum):
    """Possible statuses for a booking lifecycle."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    RESCHEDULED = "rescheduled"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
)
# Bookings in these states no longer hold their slot on the calendar.
RELEASED_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.NO_SHOW})


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"
    FAILED = "failed"


class BookingSource(str, enum.Enum):
    """Channel the booking request came from."""

    WEBSITE = "website"
    PHONE = "phone"
    WALK_IN = "walk-in"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social-media"
    ADMIN = "admin"


@dataclass(frozen=True)
class CancellationRecord:
    reason: str | None
    cancelled_at: datetime
    cancelled_by: uuid.UUID | None
    refund_amount: Decimal


@dataclass(frozen=True)
class ReschedulingRecord:
    original_date: date
    original_time: str
    reason: str | None
    rescheduled_at: datetime
    rescheduled_by: uuid.UUID | None


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Booking(Base, TimestampMixin):
    """A single appointment on the clinic calendar."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_appointment_slot", "appointment_date", "appointment_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id", ondelete="RESTRICT"), index=True
    )
    staff_member_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=enum_values),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=enum_values),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    invoice_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    source: Mapped[BookingSource] = mapped_column(
        Enum(BookingSource, name="booking_source", values_callable=enum_values),
        default=BookingSource.WEBSITE,
        nullable=False,
    )
    client_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    staff_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_first_time_client: Mapped[bool] = mapped_column(Boolean, default=False)

    reminder_hours: Mapped[int] = mapped_column(Integer, default=24)
    reminder_email_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_email_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    reminder_sms_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_sms_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    rescheduled_from_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    rescheduled_from_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    reschedule_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rescheduled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rescheduled_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    checked_out_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    service = relationship("Service", lazy="joined")
    photos = relationship(
        "BookingPhoto",
        back_populates="booking",
        order_by="BookingPhoto.taken_at",
        cascade="all, delete-orphan",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def cancellation(self) -> CancellationRecord | None:
        if self.cancelled_at is None:
            return None
        return CancellationRecord(
            reason=self.cancellation_reason,
            cancelled_at=self.cancelled_at,
            cancelled_by=self.cancelled_by_id,
            refund_amount=self.refund_amount or Decimal("0"),
        )

    @cancellation.setter
    def cancellation(self, record: CancellationRecord) -> None:
        self.cancellation_reason = record.reason
        self.cancelled_at = _as_naive_utc(record.cancelled_at)
        self.cancelled_by_id = record.cancelled_by
        self.refund_amount = record.refund_amount

    @property
    def rescheduling(self) -> ReschedulingRecord | None:
        if self.rescheduled_at is None:
            return None
        return ReschedulingRecord(
            original_date=self.rescheduled_from_date,
            original_time=self.rescheduled_from_time,
            reason=self.reschedule_reason,
            rescheduled_at=self.rescheduled_at,
            rescheduled_by=self.rescheduled_by_id,
        )

    @rescheduling.setter
    def rescheduling(self, record: ReschedulingRecord) -> None:
        self.rescheduled_from_date = record.original_date
        self.rescheduled_from_time = record.original_time
        self.reschedule_reason = record.reason
        self.rescheduled_at = _as_naive_utc(record.rescheduled_at)
        self.rescheduled_by_id = record.rescheduled_by
