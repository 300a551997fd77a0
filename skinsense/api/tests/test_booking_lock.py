from datetime import date

import pytest
import redis

from app.services import booking_lock
from app.services.errors import SlotConflict


class FakeLock:
    def __init__(self, owner, name, acquired=True):
        self.owner = owner
        self.name = name
        self.acquired = acquired

    def acquire(self):
        self.owner.events.append(("acquire", self.name))
        return self.acquired

    def release(self):
        self.owner.events.append(("release", self.name))
        if self.owner.expired:
            raise redis.exceptions.LockError("lock expired")


class FakeRedis:
    def __init__(self, busy=(), expired=False):
        self.events = []
        self.busy = set(busy)
        self.expired = expired

    def lock(self, name, timeout=None, blocking_timeout=None):
        return FakeLock(self, name, acquired=name not in self.busy)


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(booking_lock.settings, "booking_lock_enabled", True)


def key(day):
    return f"skinsense:calendar:lock:{day.isoformat()}"


def test_disabled_lock_is_a_no_op():
    client = FakeRedis()

    with booking_lock.calendar_lock(date(2025, 3, 10), client=client):
        pass

    assert client.events == []


def test_locks_are_taken_in_date_order_and_released(enabled):
    client = FakeRedis()
    later, earlier = date(2025, 3, 12), date(2025, 3, 10)

    with booking_lock.calendar_lock(later, earlier, later, client=client):
        assert client.events == [("acquire", key(earlier)), ("acquire", key(later))]

    assert client.events[2:] == [("release", key(later)), ("release", key(earlier))]


def test_busy_calendar_raises_slot_conflict(enabled):
    day = date(2025, 3, 10)
    client = FakeRedis(busy={key(day)})

    with pytest.raises(SlotConflict):
        with booking_lock.calendar_lock(day, client=client):
            pytest.fail("body must not run while the calendar is locked")


def test_expired_lock_does_not_mask_the_result(enabled):
    client = FakeRedis(expired=True)

    with booking_lock.calendar_lock(date(2025, 3, 10), client=client):
        outcome = "written"

    assert outcome == "written"
