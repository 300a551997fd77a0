"""Best-effort booking notifications over email and SMS.

A failed send is logged and recorded in the message log but never raised:
notification delivery sits outside the booking's consistency boundary.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.metrics import NOTIFICATIONS_SENT
from app.models import Booking, MessageLog
from app.models.base import utcnow
from app.services.email_client import send_email
from app.services.message_templates import render_email, render_sms
from app.services.sms_client import send_sms

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"


def format_amount(amount: Decimal | None) -> str:
    return f"${Decimal(amount or 0):.2f}"


def booking_variables(booking: Booking) -> dict[str, Any]:
    """Template variables shared by every notification for ``booking``."""

    user = booking.user
    service = booking.service
    refund = (booking.cancellation.refund_amount if booking.cancellation else None) or Decimal("0")
    refund_note = (
        f" A refund of {format_amount(refund)} will be processed within 3-5 business days."
        if refund > 0
        else ""
    )
    return {
        "business_name": settings.business_name,
        "first_name": user.first_name if user else "there",
        "service_name": service.name if service else "Service",
        "appointment_date": booking.appointment_date.strftime("%B %d, %Y"),
        "appointment_time": booking.appointment_time,
        "duration": booking.duration,
        "total_amount": format_amount(booking.total_amount),
        "invoice_number": booking.invoice_number,
        "manage_url": f"{settings.frontend_url.rstrip('/')}/bookings/{booking.id}",
        "refund_note": refund_note,
    }


def persist_message_log(
    db: Session,
    *,
    booking: Booking,
    channel: str,
    kind: str,
    recipient: str | None,
    payload: Any,
    status: str,
    metadata: dict[str, Any] | None = None,
    error: str | None = None,
    sent_at: datetime | None = None,
) -> MessageLog:
    """Persist a record in the message log table."""

    payload_value = (
        payload
        if isinstance(payload, str)
        else json.dumps(payload, ensure_ascii=False, default=str)
    )
    entry = MessageLog(
        booking_id=booking.id,
        channel=channel,
        kind=kind,
        recipient=recipient,
        payload=payload_value,
        metadata_json=metadata,
        status=status,
        error=error,
        sent_at=sent_at,
    )
    db.add(entry)
    db.flush()
    NOTIFICATIONS_SENT.labels(channel=channel, kind=kind, status=status).inc()
    return entry


def send_channel(db: Session, booking: Booking, channel: str, kind: str) -> MessageLog:
    """Send one notification over one channel, recording the outcome."""

    user = booking.user
    recipient = (user.email if channel == EMAIL else user.phone) if user else None
    if not recipient:
        return persist_message_log(
            db,
            booking=booking,
            channel=channel,
            kind=kind,
            recipient=None,
            payload=None,
            status="skipped",
            error="no recipient on file",
        )

    try:
        variables = booking_variables(booking)
        if channel == EMAIL:
            subject, body = render_email(kind, variables)
            message_id, payload = send_email(recipient, subject, body)
        else:
            message_id, _response, payload = send_sms(recipient, render_sms(kind, variables))
    except Exception as exc:
        logger.exception(
            "notification send failed",
            extra={"booking_id": str(booking.id), "channel": channel, "kind": kind},
        )
        return persist_message_log(
            db,
            booking=booking,
            channel=channel,
            kind=kind,
            recipient=recipient,
            payload=None,
            status="failed",
            error=str(exc),
        )

    logger.info(
        "notification sent",
        extra={"booking_id": str(booking.id), "channel": channel, "kind": kind},
    )
    return persist_message_log(
        db,
        booking=booking,
        channel=channel,
        kind=kind,
        recipient=recipient,
        payload=payload,
        status="sent",
        metadata={"message_id": message_id},
        sent_at=utcnow(),
    )


def notify_booking(db: Session, booking: Booking, kind: str) -> list[MessageLog]:
    """Email the client and, when they opted in, text them too."""

    channels = [EMAIL]
    if booking.user is not None and booking.user.sms_notifications:
        channels.append(SMS)
    return [send_channel(db, booking, channel, kind) for channel in channels]


__all__ = [
    "EMAIL",
    "SMS",
    "booking_variables",
    "notify_booking",
    "persist_message_log",
    "send_channel",
]
