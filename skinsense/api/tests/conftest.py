import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TIMEZONE"] = "UTC"
os.environ["NOTIFICATIONS_MOCK_MODE"] = "true"
os.environ["BOOKING_LOCK_ENABLED"] = "false"

from datetime import date, datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.clock import get_clock  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Booking,
    BookingSource,
    BookingStatus,
    PaymentStatus,
    Service,
    ServiceCategory,
    User,
    UserRole,
)


class FrozenClock:
    """Callable clock pinned to an instant that tests can move."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"value": 0}

    def factory(role: UserRole = UserRole.CLIENT, **overrides) -> User:
        counter["value"] += 1
        fields = {
            "first_name": "Test",
            "last_name": f"User{counter['value']}",
            "email": f"user{counter['value']}@example.com",
            "phone": "+15555550100",
            "role": role,
            "sms_notifications": False,
            "appointment_reminders": True,
            "is_active": True,
        }
        fields.update(overrides)
        user = User(**fields)
        db.add(user)
        db.commit()
        return user

    return factory


@pytest.fixture
def make_service(db):
    def factory(**overrides) -> Service:
        fields = {
            "name": "Signature Facial",
            "category": ServiceCategory.FACIAL_TREATMENTS,
            "duration": 60,
            "price": Decimal("100.00"),
            "preparation_time": 15,
            "cleanup_time": 15,
            "booking_advance_notice": 24,
            "is_active": True,
            "is_popular": False,
            "is_featured": False,
            "display_order": 0,
        }
        fields.update(overrides)
        service = Service(**fields)
        db.add(service)
        db.commit()
        return service

    return factory


@pytest.fixture
def make_booking(db):
    counter = {"value": 0}

    def factory(
        user: User,
        service: Service,
        appointment_date: date,
        appointment_time: str,
        **overrides,
    ) -> Booking:
        counter["value"] += 1
        fields = {
            "user_id": user.id,
            "service_id": service.id,
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "duration": service.duration,
            "status": BookingStatus.PENDING,
            "payment_status": PaymentStatus.PENDING,
            "total_amount": service.price,
            "deposit_amount": Decimal("0"),
            "refund_amount": Decimal("0"),
            "invoice_number": f"TEST-{counter['value']:04d}",
            "source": BookingSource.WEBSITE,
            "reminder_hours": 24,
            "reminder_email_sent": False,
            "reminder_sms_sent": False,
        }
        fields.update(overrides)
        booking = Booking(**fields)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return factory
