"""Persisted tracker state — one JSON document, camelCase keys."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from tracker.kernel.history import ProgressHistory
from tracker.kernel.models import TargetKind, TrackerConfig
from tracker.kernel.target import AnyTarget

logger = logging.getLogger(__name__)

_KNOWN_KINDS = {kind.value for kind in TargetKind}


class TrackerState(TrackerConfig):
    targets: list[AnyTarget] = Field(default_factory=list)
    last_reset: datetime | None = None
    progress_history: ProgressHistory = Field(default_factory=ProgressHistory)

    @field_validator("targets", mode="before")
    @classmethod
    def _drop_unknown_kinds(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        kept = []
        for record in value:
            if isinstance(record, dict) and record.get("kind") not in _KNOWN_KINDS:
                logger.debug("Dropping target record with unknown kind: %r", record.get("kind"))
                continue
            kept.append(record)
        return kept

    def tracker_config(self) -> TrackerConfig:
        return TrackerConfig.model_validate(self.model_dump(include=set(TrackerConfig.model_fields)))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
