"""Tracker service — the host-facing facade over the kernel.

Owns the live state (registry, history, config, focus, reset timer) and the
persistence wiring. Edits are validated here, at the boundary; nothing
inside the kernel re-validates.
"""

from __future__ import annotations

import logging
import math

from tracker.kernel.clock import Clock
from tracker.kernel.content import ContentSource
from tracker.kernel.errors import ValidationError
from tracker.kernel.models import (
    TIME_MULTIPLIERS,
    ConfigEdit,
    Period,
    TargetEdit,
    TargetKind,
    TargetView,
    TrackerConfig,
    YearProgressDay,
)
from tracker.kernel.persistence import DebouncedSaver, StateStore
from tracker.kernel.progress import ProgressTracker
from tracker.kernel.registry import TargetRegistry
from tracker.kernel.scheduler import ResetScheduler
from tracker.kernel.state import TrackerState
from tracker.kernel.target import Target, TimeTarget, WordCountTarget, new_target

logger = logging.getLogger(__name__)


class TrackerService:
    def __init__(
        self,
        state: TrackerState,
        content: ContentSource,
        clock: Clock,
        store: StateStore | None = None,
        save_delay: float = 5.0,
    ):
        self.config = state.tracker_config()
        self.registry = TargetRegistry(state.targets)
        self.history = state.progress_history
        self.content = content
        self.clock = clock
        self.store = store
        self.saver = DebouncedSaver(self._persist, save_delay)
        self.tracker = ProgressTracker(self.registry, content, self.config, clock, on_change=self.schedule_save)
        self.scheduler = ResetScheduler(
            self.registry,
            self.history,
            self.config,
            clock,
            last_reset=state.last_reset,
            on_change=self.schedule_save,
        )

    @classmethod
    async def load(
        cls,
        store: StateStore,
        content: ContentSource,
        clock: Clock,
        defaults: TrackerConfig | None = None,
        save_delay: float = 5.0,
    ) -> TrackerService:
        state = await store.load()
        if state is None:
            logger.info("No stored tracker state; starting fresh")
            state = TrackerState(**(defaults or TrackerConfig()).model_dump())
        return cls(state, content, clock, store=store, save_delay=save_delay)

    def snapshot(self) -> TrackerState:
        return TrackerState(
            **self.config.model_dump(),
            targets=self.registry.snapshot(),
            last_reset=self.scheduler.last_reset,
            progress_history=self.history,
        )

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    def schedule_save(self) -> None:
        self.saver.schedule_save()

    async def _persist(self) -> None:
        if self.store is None:
            return
        await self.store.save(self.snapshot())

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def on_startup(self) -> None:
        self.scheduler.check_missed_resets()
        self.scheduler.arm()

    async def on_shutdown(self) -> None:
        self.scheduler.stop()
        await self.saver.force_save()

    # -----------------------------------------------------------------------
    # Targets
    # -----------------------------------------------------------------------

    async def create_target(self, kind: TargetKind | str) -> Target:
        target = new_target(kind)
        target.reset_progress(self.content.list_documents())
        self.registry.add(target)
        logger.info("Created %s target %s", target.kind, target.id)
        await self.saver.force_save()
        return target

    async def delete_target(self, target_id: str) -> Target:
        target = self.registry.delete(target_id)
        logger.info("Deleted target %s '%s'", target.id, target.name)
        await self.saver.force_save()
        return target

    def _validate_edit(self, target: Target, edit: TargetEdit) -> tuple[str, str, int, int | None]:
        name = edit.name.strip()
        if not name:
            raise ValidationError("name", "Target name cannot be empty.")

        multiplier = None
        scale = 1
        if isinstance(target, TimeTarget):
            multiplier = edit.multiplier if edit.multiplier is not None else target.multiplier
            if multiplier not in TIME_MULTIPLIERS.values():
                raise ValidationError("multiplier", "Time unit must be seconds, minutes or hours.")
            scale = multiplier

        if not math.isfinite(edit.goal) or edit.goal <= 0 or round(edit.goal * scale) <= 0:
            label = "Time" if isinstance(target, TimeTarget) else "Word count"
            raise ValidationError("goal", f"{label} target must be a positive number.")
        goal = round(edit.goal * scale)

        path = edit.path.strip()
        if not self.content.path_exists(path):
            raise ValidationError("path", "The specified path does not exist in the corpus.")
        return name, path, goal, multiplier

    async def edit_target(self, target_id: str, edit: TargetEdit) -> Target:
        target = self.registry.require(target_id)
        name, path, goal, multiplier = self._validate_edit(target, edit)

        path_changed = path != target.path
        target.name = name
        target.period = edit.period
        target.goal = goal
        target.path = path
        if isinstance(target, TimeTarget) and multiplier is not None:
            target.multiplier = multiplier

        if path_changed:
            await self.rederive_progress(target)
        await self.saver.force_save()
        return target

    async def rederive_progress(self, target: Target) -> None:
        """Throw away the target's progress and rebuild it for its current path."""
        documents = self.content.list_documents()
        target.reset_progress(documents)
        if isinstance(target, WordCountTarget):
            await self.tracker.measure_documents(target, documents)
        logger.info("Re-derived progress for target %s over %d document(s)", target.id, len(target.progress))
        self.schedule_save()

    def get_displayed_total_progress(self, target_id: str) -> int:
        return self.registry.require(target_id).get_total_progress()

    def get_year_progress(self, year: int, period: Period | str, kind: TargetKind | str) -> list[YearProgressDay]:
        return self.history.get_year_progress(year, period, kind)

    def target_view(self, target: Target) -> TargetView:
        total = target.get_total_progress()
        progress_pct = min(total / target.goal * 100.0, 100.0) if target.goal > 0 else 0.0
        return TargetView(
            id=target.id,
            name=target.name,
            kind=target.kind,
            period=target.period,
            goal=target.goal,
            path=target.path,
            multiplier=target.multiplier if isinstance(target, TimeTarget) else None,
            total_progress=total,
            progress_pct=round(progress_pct, 1),
            displayed_progress=target.get_displayed_progress(),
        )

    # -----------------------------------------------------------------------
    # Config
    # -----------------------------------------------------------------------

    async def update_config(self, edit: ConfigEdit) -> TrackerConfig:
        changes = edit.model_dump(exclude_none=True)
        for field, value in changes.items():
            setattr(self.config, field, value)
        if "daily_reset_hour" in changes and self.scheduler.armed:
            self.scheduler.arm()
        await self.saver.force_save()
        return self.config
