"""Reset scheduler — rolls finished periods into history and spawns successors.

One timer is pending at a time, armed for the next daily boundary
(``daily_reset_hour`` o'clock, local to the clock's timezone). When it fires,
every daily target resets; weekly targets reset too when the boundary falls
on ``weekly_reset_day`` (0=Sunday). The scheduler then re-arms itself.

Missed boundaries (the process was not running) are handled once at startup
by ``check_missed_resets``: the whole backlog collapses into a single reset
pass dated at the most recent boundary.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from tracker.kernel.clock import Clock, seconds_until
from tracker.kernel.history import ProgressHistory
from tracker.kernel.models import Period, TrackerConfig
from tracker.kernel.registry import TargetRegistry
from tracker.kernel.target import Target

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


def compute_next_reset_instant(daily_reset_hour: int, from_: datetime) -> datetime:
    """Today's ``daily_reset_hour``:00:00.000, rolled forward a day unless strictly after ``from_``."""
    instant = from_.replace(hour=daily_reset_hour, minute=0, second=0, microsecond=0)
    if instant <= from_:
        instant += timedelta(days=1)
    return instant


def most_recent_reset_instant(daily_reset_hour: int, now: datetime) -> datetime:
    """The latest boundary at or before ``now``."""
    return compute_next_reset_instant(daily_reset_hour, now) - timedelta(days=1)


def weekday_sunday_first(dt: datetime) -> int:
    """Day of week where Sunday=0, Saturday=6."""
    return (dt.weekday() + 1) % 7


def period_date_key(period: Period, reset_instant: datetime) -> str:
    """History key for a period ending at ``reset_instant``.

    Daily archives are filed under the reset day itself. Weekly archives are
    filed under the first day of the week that ended, so the year view can
    carry them forward over that week's remaining days.
    """
    if period == Period.weekly:
        return (reset_instant - timedelta(days=DAYS_PER_WEEK)).date().isoformat()
    return reset_instant.date().isoformat()


class ResetScheduler:
    def __init__(
        self,
        registry: TargetRegistry,
        history: ProgressHistory,
        config: TrackerConfig,
        clock: Clock,
        last_reset: datetime | None = None,
        on_change: Callable[[], None] | None = None,
    ):
        self.registry = registry
        self.history = history
        self.config = config
        self.clock = clock
        self.last_reset = last_reset
        self.on_change = on_change

        self._handle: asyncio.TimerHandle | None = None
        self._next_reset: datetime | None = None

    @property
    def next_reset(self) -> datetime | None:
        """Instant the pending timer fires at; None while idle."""
        return self._next_reset

    @property
    def armed(self) -> bool:
        return self._handle is not None

    # -----------------------------------------------------------------------
    # Timer
    # -----------------------------------------------------------------------

    def arm(self, from_: datetime | None = None) -> datetime:
        """Cancel any pending timer and arm one for the first boundary after now (or ``from_``, if later)."""
        self.stop()
        now = self.clock()
        start = now if from_ is None else max(now, from_)
        instant = compute_next_reset_instant(self.config.daily_reset_hour, start)
        delay = max(0.0, seconds_until(now, instant))
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self.on_timer_fire)
        self._next_reset = instant
        logger.info("Next reset at %s (in %.0fs)", instant.isoformat(), delay)
        return instant

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._next_reset = None

    def on_timer_fire(self) -> None:
        instant = self._next_reset or most_recent_reset_instant(self.config.daily_reset_hour, self.clock())
        self._handle = None
        self._next_reset = None

        weekly_due = weekday_sunday_first(instant) == self.config.weekly_reset_day
        self.reset_targets(instant, weekly_due=weekly_due)
        self.last_reset = instant
        self._changed()
        # The loop may fire slightly ahead of the wall clock; never re-arm for this boundary.
        self.arm(from_=instant)

    # -----------------------------------------------------------------------
    # Catch-up
    # -----------------------------------------------------------------------

    def check_missed_resets(self) -> bool:
        """Run one collapsed catch-up pass if boundaries were missed. Returns True if it ran."""
        boundary = most_recent_reset_instant(self.config.daily_reset_hour, self.clock())
        if self.last_reset is None:
            self.last_reset = boundary
            self._changed()
            return False
        if self.last_reset.tzinfo is None:
            # Older state stored naive timestamps in local time.
            self.last_reset = self.last_reset.replace(tzinfo=boundary.tzinfo)
        if self.last_reset >= boundary:
            return False

        weekly_instant = self._latest_missed_weekly_boundary(boundary)
        logger.info(
            "Missed reset(s) since %s; catching up once at %s (weekly: %s)",
            self.last_reset.isoformat(),
            boundary.isoformat(),
            weekly_instant is not None,
        )
        self.reset_targets(boundary, weekly_due=weekly_instant is not None, weekly_instant=weekly_instant)
        self.last_reset = boundary
        self._changed()
        return True

    def _latest_missed_weekly_boundary(self, boundary: datetime) -> datetime | None:
        # At most one week of boundaries needs checking: a weekday repeats every 7.
        candidate = boundary
        for _ in range(DAYS_PER_WEEK):
            if candidate <= self.last_reset:
                return None
            if weekday_sunday_first(candidate) == self.config.weekly_reset_day:
                return candidate
            candidate -= timedelta(days=1)
        return None

    # -----------------------------------------------------------------------
    # Reset + archive
    # -----------------------------------------------------------------------

    def reset_targets(
        self,
        instant: datetime,
        weekly_due: bool = False,
        weekly_instant: datetime | None = None,
    ) -> int:
        """Archive and replace every due target. Returns how many were reset."""
        reset = 0
        for target in self.registry.snapshot():
            if target.period == Period.daily:
                self.reset_target(target, instant)
            elif target.period == Period.weekly and weekly_due:
                self.reset_target(target, weekly_instant or instant)
            else:
                continue
            reset += 1
        return reset

    def reset_target(self, target: Target, instant: datetime) -> None:
        if target.period == Period.none:
            return
        self.archive_target(target, instant)
        self.registry.replace(target.id, target.get_next_period_target())

    def archive_target(self, target: Target, instant: datetime) -> bool:
        if target.period == Period.none:
            return False
        total = target.get_total_progress()
        if total == 0:
            return False
        date_key = period_date_key(Period(target.period), instant)
        self.history.accumulate(target.period, date_key, target.kind, target.goal, total)
        logger.info("Archived %s '%s' for %s: %d/%d", target.period.value, target.name, date_key, total, target.goal)
        return True

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
