"""Slot availability, notice and refund policy for the clinic calendar.

The clinic is a single shared resource: every non-released booking blocks
``[start, start + duration)`` on its date regardless of the staff member
assigned. Everything here is pure computation over records the caller has
already loaded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.models import RELEASED_STATUSES, BookingStatus

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
CENT = Decimal("0.01")


class CalendarEntry(Protocol):
    """Shape of a booking as far as the conflict check is concerned."""

    id: UUID
    appointment_date: date
    appointment_time: str
    duration: int
    status: BookingStatus | str


@dataclass(frozen=True)
class Interval:
    """Half-open span of minutes since midnight."""

    start: int
    end: int

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end


def clinic_timezone() -> ZoneInfo:
    """Return the clinic timezone, falling back to UTC."""

    try:
        return ZoneInfo(settings.timezone)
    except ZoneInfoNotFoundError:  # pragma: no cover
        return ZoneInfo("UTC")


def ensure_utc(value: datetime) -> datetime:
    """Coerce a datetime into UTC timezone-aware form."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_time(value: str) -> int:
    """Convert ``HH:MM`` (24h) into minutes since midnight."""

    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM between 00:00 and 23:59")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def booking_interval(appointment_time: str, duration: int) -> Interval:
    start = parse_time(appointment_time)
    return Interval(start, start + int(duration))


def find_conflict(
    bookings: Iterable[CalendarEntry],
    target_date: date,
    appointment_time: str,
    duration: int,
    exclude_booking_id: UUID | None = None,
) -> CalendarEntry | None:
    """Return the first booking overlapping the candidate slot, if any."""

    if duration <= 0:
        raise ValueError("Duration must be a positive number of minutes")

    candidate = booking_interval(appointment_time, duration)
    for booking in bookings:
        if booking.appointment_date != target_date:
            continue
        if BookingStatus(booking.status) in RELEASED_STATUSES:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if candidate.overlaps(booking_interval(booking.appointment_time, booking.duration)):
            return booking
    return None


def is_slot_available(
    bookings: Iterable[CalendarEntry],
    target_date: date,
    appointment_time: str,
    duration: int,
    exclude_booking_id: UUID | None = None,
) -> bool:
    """Return whether ``[time, time + duration)`` is free on ``target_date``."""

    conflict = find_conflict(
        bookings, target_date, appointment_time, duration, exclude_booking_id
    )
    return conflict is None


def appointment_start(
    target_date: date, appointment_time: str, tz: ZoneInfo | None = None
) -> datetime:
    """Combine a calendar date and wall-clock time into an aware datetime."""

    minutes = parse_time(appointment_time)
    wall_clock = time(hour=minutes // 60, minute=minutes % 60)
    return datetime.combine(target_date, wall_clock, tzinfo=tz or clinic_timezone())


def hours_until(start: datetime, now: datetime) -> float:
    """Hours of notice between ``now`` and ``start`` (negative when past)."""

    return (ensure_utc(start) - ensure_utc(now)).total_seconds() / 3600


def refund_for(
    hours_notice: float,
    total_amount: Decimal,
    *,
    full_hours: float | None = None,
    partial_hours: float | None = None,
    partial_rate: Decimal | None = None,
) -> Decimal:
    """Refund owed when a booking is cancelled with ``hours_notice`` to spare.

    Full refund at or above ``full_hours`` (24 by default), ``partial_rate``
    of the amount at or above ``partial_hours`` (4 by default), nothing below.
    """

    full_hours = settings.refund_full_hours if full_hours is None else full_hours
    partial_hours = settings.refund_partial_hours if partial_hours is None else partial_hours
    partial_rate = settings.refund_partial_rate if partial_rate is None else partial_rate

    amount = Decimal(str(total_amount))
    if hours_notice >= full_hours:
        refund = amount
    elif hours_notice >= partial_hours:
        refund = amount * Decimal(str(partial_rate))
    else:
        refund = Decimal("0")
    return refund.quantize(CENT, rounding=ROUND_HALF_UP)


def generate_time_slots(
    open_hour: int | None = None,
    close_hour: int | None = None,
    interval_minutes: int | None = None,
) -> list[str]:
    """Candidate start times on the business-hours grid."""

    open_hour = settings.business_open_hour if open_hour is None else open_hour
    close_hour = settings.business_close_hour if close_hour is None else close_hour
    step = interval_minutes or settings.slot_interval_minutes

    return [format_time(minute) for minute in range(open_hour * 60, close_hour * 60, step)]


def available_slots(
    bookings: Iterable[CalendarEntry],
    target_date: date,
    duration: int,
    *,
    earliest_start: datetime | None = None,
    tz: ZoneInfo | None = None,
    open_hour: int | None = None,
    close_hour: int | None = None,
    interval_minutes: int | None = None,
) -> list[str]:
    """Grid slots on ``target_date`` that fit before closing and are free."""

    close_hour = settings.business_close_hour if close_hour is None else close_hour
    entries = [booking for booking in bookings if booking.appointment_date == target_date]
    closing = close_hour * 60

    slots: list[str] = []
    for candidate in generate_time_slots(open_hour, close_hour, interval_minutes):
        if parse_time(candidate) + duration > closing:
            continue
        if earliest_start is not None and appointment_start(
            target_date, candidate, tz
        ) < ensure_utc(earliest_start):
            continue
        if is_slot_available(entries, target_date, candidate, duration):
            slots.append(candidate)
    return slots


def earliest_bookable(now: datetime, advance_notice_hours: int) -> datetime:
    """First instant a service with the given notice can start."""

    return ensure_utc(now) + timedelta(hours=advance_notice_hours)
