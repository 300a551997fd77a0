"""Optional per-date serialization of calendar writes backed by Redis.

The availability check and the insert that follows it are two steps. When
``BOOKING_LOCK_ENABLED`` is set, writers touching the same calendar date take
a Redis lock first so only one of them runs the check-then-write at a time.
Disabled by default.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from datetime import date
from typing import Final, Iterator

import redis

from app.core.config import settings
from app.services.errors import SlotConflict

logger = logging.getLogger(__name__)

_LOCK_KEY_TEMPLATE: Final[str] = "skinsense:calendar:lock:{day}"


def _get_client() -> redis.Redis:
    """Return a Redis client configured via application settings."""

    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


@contextmanager
def _redis_lock(target_date: date, client: redis.Redis) -> Iterator[None]:
    timeout = settings.booking_lock_timeout_seconds
    lock = client.lock(
        _LOCK_KEY_TEMPLATE.format(day=target_date.isoformat()),
        timeout=timeout,
        blocking_timeout=timeout,
    )
    if not lock.acquire():
        logger.warning("calendar lock busy", extra={"date": target_date.isoformat()})
        raise SlotConflict("The calendar is busy for that date, please try again")
    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:
            logger.warning("calendar lock expired before release", extra={"date": target_date.isoformat()})


def calendar_lock(*dates: date, client: redis.Redis | None = None):
    """Hold the calendar lock for every distinct date in ``dates``.

    Locks are taken in date order so two writers never wait on each other.
    """

    if not settings.booking_lock_enabled:
        return nullcontext()
    return _multi_lock(sorted(set(dates)), client or _get_client())


@contextmanager
def _multi_lock(dates: list[date], client: redis.Redis) -> Iterator[None]:
    if not dates:
        yield
        return
    with _redis_lock(dates[0], client):
        with _multi_lock(dates[1:], client):
            yield
