"""Appointment reminders for bookings starting soon."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import TERMINAL_STATUSES, Booking
from app.services.notifications import EMAIL, SMS, send_channel
from app.services.scheduling import appointment_start, clinic_timezone, ensure_utc, hours_until

logger = logging.getLogger(__name__)

# Longest reminder window a booking may ask for.
_MAX_LOOKAHEAD = timedelta(days=7)


@dataclass
class ReminderReport:
    checked: int = 0
    sent: int = 0
    failed: int = 0
    booking_ids: list[str] = field(default_factory=list)


def _pending_channels(booking: Booking) -> list[str]:
    channels = []
    if not booking.reminder_email_sent:
        channels.append(EMAIL)
    user = booking.user
    if user.sms_notifications and user.phone and not booking.reminder_sms_sent:
        channels.append(SMS)
    return channels


def due_reminders(db: Session, now: datetime, tz: ZoneInfo | None = None) -> list[Booking]:
    """Bookings that start within their reminder window and still owe a reminder."""

    tz = tz or clinic_timezone()
    local_now = ensure_utc(now).astimezone(tz)
    stmt = select(Booking).where(
        Booking.status.not_in(list(TERMINAL_STATUSES)),
        Booking.appointment_date >= local_now.date(),
        Booking.appointment_date <= (local_now + _MAX_LOOKAHEAD).date(),
    )

    due = []
    for booking in db.execute(stmt).unique().scalars():
        user = booking.user
        if user is None or not user.appointment_reminders:
            continue
        notice = hours_until(
            appointment_start(booking.appointment_date, booking.appointment_time, tz), now
        )
        if not 0 < notice <= (booking.reminder_hours or 24):
            continue
        if _pending_channels(booking):
            due.append(booking)
    return due


def dispatch_due_reminders(
    db: Session, now: datetime, tz: ZoneInfo | None = None
) -> ReminderReport:
    """Send every owed reminder and flag the channels that went out."""

    report = ReminderReport()
    sent_at = ensure_utc(now).replace(tzinfo=None)
    for booking in due_reminders(db, now, tz):
        report.checked += 1
        for channel in _pending_channels(booking):
            entry = send_channel(db, booking, channel, "reminder")
            if entry.status != "sent":
                report.failed += 1
                continue
            report.sent += 1
            if channel == EMAIL:
                booking.reminder_email_sent = True
                booking.reminder_email_sent_at = sent_at
            else:
                booking.reminder_sms_sent = True
                booking.reminder_sms_sent_at = sent_at
        report.booking_ids.append(str(booking.id))

    db.flush()
    logger.info(
        "reminders dispatched",
        extra={"checked": report.checked, "sent": report.sent, "failed": report.failed},
    )
    return report
