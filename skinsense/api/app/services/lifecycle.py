"""Booking lifecycle transitions.

``pending -> confirmed -> in-progress -> completed`` with ``cancelled`` and
``no-show`` as terminal side branches. ``rescheduled`` marks a booking that
moved and re-enters the confirmation flow. Transitions only mutate the
booking; persistence and notifications belong to the caller.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID
from zoneinfo import ZoneInfo

from app.models import (
    TERMINAL_STATUSES,
    Booking,
    BookingStatus,
    CancellationRecord,
    PaymentStatus,
    ReschedulingRecord,
)
from app.services.errors import InvalidTransition, PastAppointment, SlotConflict
from app.services.scheduling import (
    CalendarEntry,
    appointment_start,
    ensure_utc,
    is_slot_available,
    parse_time,
)

CONFIRMABLE = frozenset({BookingStatus.PENDING, BookingStatus.RESCHEDULED})
STARTABLE = frozenset({BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED})
COMPLETABLE = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.RESCHEDULED}
)


def _guard(booking: Booking, action: str, allowed: frozenset | None = None) -> None:
    status = BookingStatus(booking.status)
    if status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Cannot {action} a booking that is already {status.value}")
    if allowed is not None and status not in allowed:
        raise InvalidTransition(f"Cannot {action} a booking that is {status.value}")


def _naive_utc(value: datetime) -> datetime:
    return ensure_utc(value).replace(tzinfo=None)


def cancel(
    booking: Booking,
    *,
    reason: str | None,
    actor_id: UUID | None,
    refund_amount: Decimal,
    now: datetime,
) -> CancellationRecord:
    """Cancel ``booking`` recording whatever refund the caller computed."""

    _guard(booking, "cancel")

    refund = Decimal(str(refund_amount or 0))
    record = CancellationRecord(
        reason=reason,
        cancelled_at=now,
        cancelled_by=actor_id,
        refund_amount=refund,
    )
    booking.status = BookingStatus.CANCELLED
    booking.cancellation = record
    if refund > 0:
        booking.payment_status = PaymentStatus.REFUNDED
    return record


def reschedule(
    booking: Booking,
    *,
    new_date: date,
    new_time: str,
    reason: str | None,
    actor_id: UUID | None,
    bookings: Iterable[CalendarEntry],
    now: datetime,
    duration: int | None = None,
    tz: ZoneInfo | None = None,
) -> ReschedulingRecord:
    """Move ``booking`` to a new slot; the booking is untouched on failure."""

    _guard(booking, "reschedule")
    parse_time(new_time)

    if appointment_start(new_date, new_time, tz) <= ensure_utc(now):
        raise PastAppointment()

    if not is_slot_available(
        bookings,
        new_date,
        new_time,
        duration or booking.duration,
        exclude_booking_id=booking.id,
    ):
        raise SlotConflict()

    record = ReschedulingRecord(
        original_date=booking.appointment_date,
        original_time=booking.appointment_time,
        reason=reason,
        rescheduled_at=now,
        rescheduled_by=actor_id,
    )
    booking.rescheduling = record
    booking.appointment_date = new_date
    booking.appointment_time = new_time
    booking.status = BookingStatus.RESCHEDULED
    booking.reminder_email_sent = False
    booking.reminder_email_sent_at = None
    booking.reminder_sms_sent = False
    booking.reminder_sms_sent_at = None
    return record


def confirm(booking: Booking) -> None:
    _guard(booking, "confirm", CONFIRMABLE)
    booking.status = BookingStatus.CONFIRMED


def start(booking: Booking, *, now: datetime) -> None:
    """Check the client in."""

    _guard(booking, "start", STARTABLE)
    booking.status = BookingStatus.IN_PROGRESS
    booking.checked_in_at = _naive_utc(now)


def complete(booking: Booking, *, now: datetime) -> None:
    _guard(booking, "complete", COMPLETABLE)
    booking.status = BookingStatus.COMPLETED
    if booking.checked_in_at is None:
        booking.checked_in_at = _naive_utc(now)
    booking.checked_out_at = _naive_utc(now)


def mark_no_show(booking: Booking) -> None:
    _guard(booking, "mark as no-show")
    booking.status = BookingStatus.NO_SHOW
