"""Booking store queries and the commands that drive the lifecycle.

These functions load what the scheduling policy needs, apply it and stage
the result on the session. Committing and sending notifications is left to
the caller so a failed email can never undo a booking.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Iterator
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.logging_utils import booking_context
from app.metrics import BOOKING_TRANSITIONS
from app.models import (
    RELEASED_STATUSES,
    AuditLog,
    Booking,
    BookingSource,
    BookingStatus,
    CancellationRecord,
    PaymentStatus,
    ReschedulingRecord,
    Service,
    User,
)
from app.services import lifecycle
from app.services.errors import (
    BookingError,
    InsufficientNotice,
    PastAppointment,
    ServiceUnavailable,
    SlotConflict,
)
from app.services.invoices import next_invoice_number
from app.services.scheduling import (
    appointment_start,
    clinic_timezone,
    ensure_utc,
    find_conflict,
    hours_until,
    refund_for,
)

logger = logging.getLogger(__name__)


@contextmanager
def _track(action: str, **context: Any) -> Iterator[None]:
    try:
        with booking_context(context.get("booking_id")):
            yield
    except BookingError as exc:
        BOOKING_TRANSITIONS.labels(action=action, outcome=type(exc).__name__).inc()
        logger.info(
            "booking %s rejected",
            action,
            extra={"reason": str(exc), **{k: str(v) for k, v in context.items()}},
        )
        raise
    BOOKING_TRANSITIONS.labels(action=action, outcome="ok").inc()


def bookings_on(
    db: Session,
    target_date: date,
    exclude_statuses: Iterable[BookingStatus] = RELEASED_STATUSES,
) -> list[Booking]:
    """Bookings on ``target_date`` whose status is not in ``exclude_statuses``."""

    stmt = (
        select(Booking)
        .where(
            Booking.appointment_date == target_date,
            Booking.status.not_in(list(exclude_statuses)),
        )
        .order_by(Booking.appointment_time)
    )
    return list(db.execute(stmt).unique().scalars().all())


def get_bookable_service(db: Session, service_id: UUID) -> Service:
    service = db.get(Service, service_id)
    if service is None or not service.is_active:
        raise ServiceUnavailable()
    return service


def record_audit(
    db: Session,
    *,
    booking: Booking,
    action: str,
    actor_id: UUID | None,
    occurred_at: datetime,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        resource=f"booking:{booking.id}",
        occurred_at=ensure_utc(occurred_at).replace(tzinfo=None),
        metadata_json={"status": booking.status.value, **(metadata or {})},
    )
    db.add(entry)
    return entry


def _is_first_time_client(db: Session, user_id: UUID) -> bool:
    previous = db.execute(
        select(func.count(Booking.id)).where(
            Booking.user_id == user_id,
            Booking.status.in_([BookingStatus.COMPLETED, BookingStatus.CONFIRMED]),
        )
    ).scalar_one()
    return previous == 0


def create_booking(
    db: Session,
    *,
    user: User,
    service_id: UUID,
    appointment_date: date,
    appointment_time: str,
    now: datetime,
    client_notes: str | None = None,
    source: BookingSource = BookingSource.WEBSITE,
    tz: ZoneInfo | None = None,
) -> Booking:
    """Validate the request against the booking policy and stage a new booking."""

    tz = tz or clinic_timezone()
    with _track("create", date=appointment_date, time=appointment_time):
        service = get_bookable_service(db, service_id)

        start = appointment_start(appointment_date, appointment_time, tz)
        notice = hours_until(start, now)
        if notice <= 0:
            raise PastAppointment()
        if notice < service.booking_advance_notice:
            raise InsufficientNotice(
                f"This service requires at least {service.booking_advance_notice} "
                "hours advance notice"
            )

        conflict = find_conflict(
            bookings_on(db, appointment_date),
            appointment_date,
            appointment_time,
            service.total_duration,
        )
        if conflict is not None:
            logger.debug("slot conflicts with booking %s", conflict.id)
            raise SlotConflict()

        booking = Booking(
            user_id=user.id,
            service_id=service.id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            duration=service.duration,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            total_amount=service.price,
            deposit_amount=Decimal("0"),
            refund_amount=Decimal("0"),
            invoice_number=next_invoice_number(db, ensure_utc(now).astimezone(tz)),
            source=source,
            client_notes=client_notes,
            is_first_time_client=_is_first_time_client(db, user.id),
            reminder_email_sent=False,
            reminder_sms_sent=False,
        )
        db.add(booking)
        db.flush()
        db.refresh(booking)
        record_audit(
            db,
            booking=booking,
            action="booking.created",
            actor_id=user.id,
            occurred_at=now,
            metadata={"invoice_number": booking.invoice_number},
        )

    logger.info(
        "booking created",
        extra={
            "booking_id": str(booking.id),
            "service_id": str(service.id),
            "appointment": f"{appointment_date.isoformat()} {appointment_time}",
        },
    )
    return booking


def cancel_booking(
    db: Session,
    booking: Booking,
    *,
    actor_id: UUID | None,
    reason: str | None,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> CancellationRecord:
    """Cancel with the refund the notice period earns."""

    with _track("cancel", booking_id=booking.id):
        start = appointment_start(booking.appointment_date, booking.appointment_time, tz)
        refund = refund_for(hours_until(start, now), booking.total_amount)
        record = lifecycle.cancel(
            booking, reason=reason, actor_id=actor_id, refund_amount=refund, now=now
        )
        record_audit(
            db,
            booking=booking,
            action="booking.cancelled",
            actor_id=actor_id,
            occurred_at=now,
            metadata={"refund_amount": str(record.refund_amount), "reason": reason},
        )
    return record


def reschedule_booking(
    db: Session,
    booking: Booking,
    *,
    actor_id: UUID | None,
    new_date: date,
    new_time: str,
    reason: str | None,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> ReschedulingRecord:
    """Move a booking after checking the new slot with itself excluded."""

    service = booking.service
    duration = booking.duration
    if service is not None:
        # never shorter than the span the booking already holds
        duration = max(duration, service.total_duration)
    with _track("reschedule", booking_id=booking.id):
        record = lifecycle.reschedule(
            booking,
            new_date=new_date,
            new_time=new_time,
            reason=reason,
            actor_id=actor_id,
            bookings=bookings_on(db, new_date),
            now=now,
            duration=duration,
            tz=tz or clinic_timezone(),
        )
        record_audit(
            db,
            booking=booking,
            action="booking.rescheduled",
            actor_id=actor_id,
            occurred_at=now,
            metadata={
                "from": f"{record.original_date.isoformat()} {record.original_time}",
                "to": f"{new_date.isoformat()} {new_time}",
            },
        )
    return record


def confirm_booking(db: Session, booking: Booking, *, actor_id: UUID | None, now: datetime) -> None:
    with _track("confirm", booking_id=booking.id):
        lifecycle.confirm(booking)
        record_audit(db, booking=booking, action="booking.confirmed", actor_id=actor_id, occurred_at=now)


def start_booking(db: Session, booking: Booking, *, actor_id: UUID | None, now: datetime) -> None:
    """Check the client in; the checking-in staff member is assigned if nobody is."""

    with _track("start", booking_id=booking.id):
        lifecycle.start(booking, now=now)
        if booking.staff_member_id is None:
            booking.staff_member_id = actor_id
        record_audit(db, booking=booking, action="booking.started", actor_id=actor_id, occurred_at=now)


def complete_booking(
    db: Session,
    booking: Booking,
    *,
    actor_id: UUID | None,
    now: datetime,
    staff_notes: str | None = None,
) -> None:
    with _track("complete", booking_id=booking.id):
        lifecycle.complete(booking, now=now)
        if staff_notes is not None:
            booking.staff_notes = staff_notes
        record_audit(db, booking=booking, action="booking.completed", actor_id=actor_id, occurred_at=now)


def mark_no_show(db: Session, booking: Booking, *, actor_id: UUID | None, now: datetime) -> None:
    with _track("no_show", booking_id=booking.id):
        lifecycle.mark_no_show(booking)
        record_audit(db, booking=booking, action="booking.no_show", actor_id=actor_id, occurred_at=now)


def list_bookings(
    db: Session,
    *,
    user_id: UUID | None = None,
    status: BookingStatus | None = None,
    on_date: date | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    """Return one page of bookings, newest appointment first, and the total."""

    conditions = []
    if user_id is not None:
        conditions.append(Booking.user_id == user_id)
    if status is not None:
        conditions.append(Booking.status == status)
    if on_date is not None:
        conditions.append(Booking.appointment_date == on_date)

    total = db.execute(select(func.count(Booking.id)).where(*conditions)).scalar_one()
    stmt = (
        select(Booking)
        .where(*conditions)
        .order_by(Booking.appointment_date.desc(), Booking.appointment_time.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(db.execute(stmt).unique().scalars().all()), int(total)


def booking_stats(db: Session) -> dict[str, Any]:
    """Counts per status plus completed revenue and refunds issued."""

    rows = db.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    ).all()
    by_status = {status.value: 0 for status in BookingStatus}
    for status, count in rows:
        by_status[BookingStatus(status).value] = int(count)

    revenue = db.execute(
        select(func.coalesce(func.sum(Booking.total_amount), 0)).where(
            Booking.status == BookingStatus.COMPLETED
        )
    ).scalar_one()
    refunds = db.execute(
        select(func.coalesce(func.sum(Booking.refund_amount), 0)).where(
            Booking.status == BookingStatus.CANCELLED
        )
    ).scalar_one()
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "completed_revenue": f"{Decimal(revenue or 0):.2f}",
        "refunds_issued": f"{Decimal(refunds or 0):.2f}",
    }
