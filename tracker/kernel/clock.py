"""Time source helpers. Everything wall-clock driven takes a Clock so tests can fake it."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def system_clock(tz_name: str = "UTC") -> Clock:
    tz = ZoneInfo(tz_name)

    def _now() -> datetime:
        return datetime.now(tz)

    return _now


def _to_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Milliseconds from ``start`` to ``end``, measured on the UTC timeline (DST-safe)."""
    return int((_to_utc(end) - _to_utc(start)).total_seconds() * 1000)


def seconds_until(start: datetime, end: datetime) -> float:
    """Seconds from ``start`` to ``end`` on the UTC timeline, rounded up to whole ms."""
    delta = _to_utc(end) - _to_utc(start)
    return math.ceil(delta / timedelta(milliseconds=1)) / 1000
