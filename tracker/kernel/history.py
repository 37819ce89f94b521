"""Progress history — accumulate-only archive of finished periods.

Layout mirrors the persisted JSON::

    {"daily":  {"2026-02-15": {"wordCount": {"target": 1000, "progress": 830}}},
     "weekly": {"2026-02-08": {"time": {"target": 3600000, "progress": 1200000}}}}

Daily keys are the ISO date of the reset day. Weekly keys are the first day of
the week that ended, which the year view carries forward over the rest of that
week. Entries are only ever added to, so several targets ending the same
period sum up.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator

from pydantic import Field

from tracker.kernel.models import ARCHIVED_PERIODS, CamelModel, HistoryEntry, Period, TargetKind, YearProgressDay

# A weekly entry stands for the days after it while it is younger than this
WEEKLY_CARRY_DAYS = 7


class ProgressHistory(CamelModel):
    daily: dict[str, dict[str, HistoryEntry]] = Field(default_factory=dict)
    weekly: dict[str, dict[str, HistoryEntry]] = Field(default_factory=dict)

    def _bucket(self, period: Period | str) -> dict[str, dict[str, HistoryEntry]]:
        period = Period(period)
        if period not in ARCHIVED_PERIODS:
            raise ValueError(f"Period '{period.value}' is never archived")
        return self.daily if period == Period.daily else self.weekly

    def accumulate(
        self,
        period: Period | str,
        date_key: str,
        kind: TargetKind | str,
        target: int,
        progress: int,
    ) -> HistoryEntry:
        by_kind = self._bucket(period).setdefault(date_key, {})
        entry = by_kind.setdefault(TargetKind(kind).value, HistoryEntry())
        entry.target += target
        entry.progress += progress
        return entry

    def get(self, period: Period | str, date_key: str, kind: TargetKind | str) -> HistoryEntry | None:
        by_kind = self._bucket(period).get(date_key)
        if by_kind is None:
            return None
        return by_kind.get(TargetKind(kind).value)

    def get_year_progress(
        self,
        year: int,
        period: Period | str,
        kind: TargetKind | str,
    ) -> list[YearProgressDay]:
        """One element per calendar day of ``year``, in chronological order.

        Daily gaps read as zero. Weekly gaps carry the closest earlier weekly
        entry (which may lie in the previous year) while it is less than
        ``WEEKLY_CARRY_DAYS`` old, and read as zero after that.
        """
        days = list(self._iter_days_newest_first(year, Period(period), TargetKind(kind)))
        days.reverse()
        return days

    def _iter_days_newest_first(self, year: int, period: Period, kind: TargetKind) -> Iterator[YearProgressDay]:
        last = date(year, 12, 31)
        for offset in range(days_in_year(year)):
            day = last - timedelta(days=offset)
            entry = self.get(period, day.isoformat(), kind)
            if entry is None and period == Period.weekly:
                entry = self._carried_weekly_entry(day, kind)
            if entry is None:
                yield YearProgressDay(date=day)
            else:
                yield YearProgressDay(date=day, target=entry.target, progress=entry.progress)

    def _carried_weekly_entry(self, day: date, kind: TargetKind) -> HistoryEntry | None:
        for age in range(1, WEEKLY_CARRY_DAYS):
            entry = self.get(Period.weekly, (day - timedelta(days=age)).isoformat(), kind)
            if entry is not None:
                return entry
        return None


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365
