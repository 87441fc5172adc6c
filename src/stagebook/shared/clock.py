"""Time helpers shared by the signature and reminder services.

Services take a ``Clock`` (a zero-argument callable returning an aware
datetime) instead of calling ``datetime.now`` directly, so tests can pin
"now" and day-offset arithmetic stays deterministic.
"""

import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_until(event_date: datetime, now: datetime) -> int:
    """Whole days until ``event_date``, rounded up (negative once it has passed)."""
    delta = ensure_aware(event_date) - ensure_aware(now)
    return math.ceil(delta / ONE_DAY)


def to_base36(value: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def epoch_millis(value: datetime) -> int:
    return int(ensure_aware(value).timestamp() * 1000)
