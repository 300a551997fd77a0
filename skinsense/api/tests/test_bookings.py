from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.models import AuditLog, BookingStatus, PaymentStatus
from app.services import bookings
from app.services.errors import (
    InsufficientNotice,
    InvalidTransition,
    PastAppointment,
    ServiceUnavailable,
    SlotConflict,
)

EARLY = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
DAY = date(2025, 3, 10)


@pytest.fixture
def client_user(make_user):
    return make_user()


@pytest.fixture
def facial(make_service):
    return make_service(duration=60, preparation_time=15, cleanup_time=15, booking_advance_notice=24)


def book(db, user, service, time, *, day=DAY, now=EARLY):
    booking = bookings.create_booking(
        db,
        user=user,
        service_id=service.id,
        appointment_date=day,
        appointment_time=time,
        now=now,
    )
    db.commit()
    return booking


def test_booking_scenario_around_an_existing_appointment(db, client_user, facial):
    existing = book(db, client_user, facial, "10:00")
    assert existing.duration == 60

    later = book(db, client_user, facial, "11:00")
    assert later.status == BookingStatus.PENDING

    with pytest.raises(SlotConflict):
        book(db, client_user, facial, "10:59")
    db.rollback()

    at_noon_before = datetime(2025, 3, 9, 12, 0, tzinfo=timezone.utc)
    with pytest.raises(PastAppointment):
        book(db, client_user, facial, "10:00", day=date(2025, 3, 9), now=at_noon_before)
    with pytest.raises(InsufficientNotice):
        book(db, client_user, facial, "09:00", now=at_noon_before)


def test_created_booking_snapshots_service_terms(db, client_user, facial):
    booking = book(db, client_user, facial, "13:00")

    facial.price = Decimal("150.00")
    facial.duration = 90
    db.commit()
    db.refresh(booking)

    assert booking.total_amount == Decimal("100.00")
    assert booking.duration == 60
    assert booking.payment_status == PaymentStatus.PENDING


def test_invoice_numbers_are_sequential_per_month(db, client_user, facial):
    first = book(db, client_user, facial, "09:00")
    second = book(db, client_user, facial, "13:00")

    assert first.invoice_number == "SS-202503-0001"
    assert second.invoice_number == "SS-202503-0002"


def test_first_time_flag_clears_after_a_confirmed_visit(db, client_user, facial):
    first = book(db, client_user, facial, "09:00")
    assert first.is_first_time_client is True

    bookings.confirm_booking(db, first, actor_id=None, now=EARLY)
    db.commit()

    second = book(db, client_user, facial, "13:00")
    assert second.is_first_time_client is False


def test_inactive_service_is_unavailable(db, client_user, make_service):
    retired = make_service(is_active=False)

    with pytest.raises(ServiceUnavailable):
        book(db, client_user, retired, "10:00")


def test_unknown_service_is_unavailable(db, client_user):
    with pytest.raises(ServiceUnavailable):
        bookings.create_booking(
            db,
            user=client_user,
            service_id=uuid4(),
            appointment_date=DAY,
            appointment_time="10:00",
            now=EARLY,
        )


def test_released_booking_frees_its_slot(db, client_user, facial):
    first = book(db, client_user, facial, "10:00")
    bookings.cancel_booking(db, first, actor_id=client_user.id, reason=None, now=EARLY)
    db.commit()

    again = book(db, client_user, facial, "10:00")

    assert again.status == BookingStatus.PENDING


def test_cancel_with_plenty_of_notice_refunds_in_full(db, client_user, facial):
    booking = book(db, client_user, facial, "10:00")
    thirty_hours_before = datetime(2025, 3, 9, 4, 0, tzinfo=timezone.utc)

    record = bookings.cancel_booking(
        db, booking, actor_id=client_user.id, reason="Travel", now=thirty_hours_before
    )
    db.commit()

    assert record.refund_amount == Decimal("100.00")
    assert booking.status == BookingStatus.CANCELLED
    assert booking.payment_status == PaymentStatus.REFUNDED


def test_cancel_same_day_refunds_half(db, client_user, facial):
    booking = book(db, client_user, facial, "10:00")
    ten_hours_before = datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)

    record = bookings.cancel_booking(
        db, booking, actor_id=client_user.id, reason=None, now=ten_hours_before
    )

    assert record.refund_amount == Decimal("50.00")


def test_cancel_twice_is_an_invalid_transition(db, client_user, facial):
    booking = book(db, client_user, facial, "10:00")
    bookings.cancel_booking(db, booking, actor_id=None, reason=None, now=EARLY)

    with pytest.raises(InvalidTransition):
        bookings.cancel_booking(db, booking, actor_id=None, reason=None, now=EARLY)


def test_reschedule_checks_the_full_treatment_window(db, client_user, facial, make_user):
    other_client = make_user()
    book(db, other_client, facial, "10:00", day=date(2025, 3, 11))
    booking = book(db, client_user, facial, "10:00")

    with pytest.raises(SlotConflict):
        bookings.reschedule_booking(
            db,
            booking,
            actor_id=client_user.id,
            new_date=date(2025, 3, 11),
            new_time="09:00",
            reason=None,
            now=EARLY,
        )

    bookings.reschedule_booking(
        db,
        booking,
        actor_id=client_user.id,
        new_date=date(2025, 3, 11),
        new_time="11:00",
        reason="Clash at work",
        now=EARLY,
    )
    db.commit()

    assert booking.status == BookingStatus.RESCHEDULED
    assert booking.rescheduling.original_time == "10:00"


def test_reschedule_after_catalog_shortening_keeps_the_booked_span(db, client_user, make_service):
    peel = make_service(
        name="Long Peel", duration=120, preparation_time=0, cleanup_time=0, booking_advance_notice=24
    )
    moving = book(db, client_user, peel, "09:00")
    book(db, client_user, peel, "13:00")
    peel.duration = 15
    db.commit()

    with pytest.raises(SlotConflict):
        bookings.reschedule_booking(
            db,
            moving,
            actor_id=client_user.id,
            new_date=DAY,
            new_time="12:00",
            reason=None,
            now=EARLY,
        )
    assert moving.appointment_time == "09:00"

    bookings.reschedule_booking(
        db,
        moving,
        actor_id=client_user.id,
        new_date=DAY,
        new_time="11:00",
        reason=None,
        now=EARLY,
    )
    db.commit()

    assert moving.appointment_time == "11:00"
    assert moving.duration == 120


def test_transitions_are_audited(db, client_user, facial):
    booking = book(db, client_user, facial, "10:00")
    bookings.confirm_booking(db, booking, actor_id=client_user.id, now=EARLY)
    db.commit()

    actions = db.execute(
        select(AuditLog.action).where(AuditLog.resource == f"booking:{booking.id}")
    ).scalars().all()

    assert sorted(actions) == ["booking.confirmed", "booking.created"]


def test_list_and_stats(db, client_user, facial, make_user):
    other_client = make_user()
    mine = book(db, client_user, facial, "09:00")
    book(db, other_client, facial, "13:00")
    bookings.confirm_booking(db, mine, actor_id=None, now=EARLY)
    bookings.complete_booking(db, mine, actor_id=None, now=EARLY)
    db.commit()

    items, total = bookings.list_bookings(db, user_id=client_user.id)
    assert total == 1
    assert items[0].id == mine.id

    stats = bookings.booking_stats(db)
    assert stats["total"] == 2
    assert stats["by_status"]["completed"] == 1
    assert stats["by_status"]["pending"] == 1
    assert stats["completed_revenue"] == "100.00"
