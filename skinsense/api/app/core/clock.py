"""Wall clock used for every "now" comparison in the booking policy."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Return the current UTC time."""

    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency returning the active clock.

    Tests override this dependency to pin "now" to a fixed instant.
    """

    return system_clock
