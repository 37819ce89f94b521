"""Tracker contract — Pydantic v2 models shared by the kernel and the HTTP layer."""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Period(str, Enum):
    none = "none"
    daily = "daily"
    weekly = "weekly"


class TargetKind(str, Enum):
    word_count = "wordCount"
    time = "time"


# Periods that reset and archive
ARCHIVED_PERIODS: tuple[Period, ...] = (Period.daily, Period.weekly)

# Time units offered for time targets: label -> ms per unit
TIME_MULTIPLIERS: dict[str, int] = {
    "seconds": 1000,
    "minutes": 60_000,
    "hours": 3_600_000,
}


class CamelModel(BaseModel):
    """Persisted records use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrackerConfig(CamelModel):
    daily_reset_hour: int = Field(default=0, ge=0, le=23)
    weekly_reset_day: int = Field(default=0, ge=0, le=6)  # 0=Sunday
    max_idle_ms: int = Field(default=30_000, gt=0)
    use_comments_in_word_count: bool = False


class HistoryEntry(BaseModel):
    target: int = 0
    progress: int = 0


class YearProgressDay(BaseModel):
    date: datetime.date
    target: int = 0
    progress: int = 0

    @property
    def ratio(self) -> float:
        if self.target == 0:
            return 0.0
        return self.progress / self.target


# ---------------------------------------------------------------------------
# Edit boundary payloads
# ---------------------------------------------------------------------------


class TargetEdit(BaseModel):
    """Full replacement of a target's editable configuration.

    ``goal`` is expressed in display units: words, or multiples of
    ``multiplier`` milliseconds for time targets.
    """

    name: str
    path: str = ""
    period: Period = Period.daily
    goal: float
    multiplier: int | None = None


class ConfigEdit(BaseModel):
    daily_reset_hour: int | None = Field(default=None, ge=0, le=23)
    weekly_reset_day: int | None = Field(default=None, ge=0, le=6)
    max_idle_ms: int | None = Field(default=None, gt=0)
    use_comments_in_word_count: bool | None = None


# ---------------------------------------------------------------------------
# HTTP views
# ---------------------------------------------------------------------------


class TargetView(BaseModel):
    id: str
    name: str
    kind: TargetKind
    period: Period
    goal: int
    path: str
    multiplier: int | None = None
    total_progress: int
    progress_pct: float
    displayed_progress: dict[str, int] = Field(default_factory=dict)


class DocumentEvent(BaseModel):
    path: str


class RenameEvent(BaseModel):
    old_path: str
    path: str


class FocusEvent(BaseModel):
    path: str | None = None
