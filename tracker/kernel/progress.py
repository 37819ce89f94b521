"""Progress tracker — turns content events into per-target progress.

Every event fans out to every registered target, in registry order. The
tracker also owns the focus state (which document is active and since when)
that time targets are credited from.

Handlers run on the event loop one at a time; the only suspension point is
the text read. Targets are looked up again after each read, so a target that
was deleted or replaced while the read was pending is simply skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable

from tracker.kernel.clock import Clock, elapsed_ms
from tracker.kernel.content import ContentSource
from tracker.kernel.errors import ContentReadError
from tracker.kernel.models import TrackerConfig
from tracker.kernel.registry import TargetRegistry
from tracker.kernel.target import TimeTarget, WordCountTarget
from tracker.kernel.wordcount import count_words

logger = logging.getLogger(__name__)


def _noop() -> None:
    return None


class ProgressTracker:
    def __init__(
        self,
        registry: TargetRegistry,
        content: ContentSource,
        config: TrackerConfig,
        clock: Clock,
        on_change: Callable[[], None] | None = None,
    ):
        self.registry = registry
        self.content = content
        self.config = config
        self.clock = clock
        self.on_change = on_change or _noop

        self.focused_document: str | None = None
        self.focused_since: datetime | None = None

    # -----------------------------------------------------------------------
    # Elapsed time
    # -----------------------------------------------------------------------

    def get_elapsed_on_focused(self) -> int:
        """Active ms on the focused document since the last accrual, capped at max_idle_ms."""
        if self.focused_document is None or self.focused_since is None:
            return 0
        gap = elapsed_ms(self.focused_since, self.clock())
        return max(0, min(self.config.max_idle_ms, gap))

    def _accrue_time(self, document_path: str) -> int:
        elapsed = self.get_elapsed_on_focused()
        for target in self.registry.snapshot():
            if isinstance(target, TimeTarget):
                target.apply_elapsed_time(document_path, elapsed)
        if self.focused_document is not None:
            self.focused_since = self.clock()
        return elapsed

    # -----------------------------------------------------------------------
    # Word counts
    # -----------------------------------------------------------------------

    async def _read_word_count(self, document_path: str) -> int | None:
        try:
            text = await self.content.read_text(document_path)
        except ContentReadError as exc:
            logger.warning("Skipping word count update for %s: %s", document_path, exc)
            return None
        return count_words(text, self.config.use_comments_in_word_count)

    def _word_count_targets(self, document_path: str, only_unmeasured: bool = False) -> list[WordCountTarget]:
        targets = []
        for target in self.registry.snapshot():
            if not isinstance(target, WordCountTarget) or not target.is_tracking(document_path):
                continue
            if only_unmeasured and not target.needs_measurement(document_path):
                continue
            targets.append(target)
        return targets

    async def _measure(self, document_path: str, only_unmeasured: bool = False) -> None:
        """Read ``document_path`` once and hand its word count to the word-count targets tracking it."""
        if not self._word_count_targets(document_path, only_unmeasured):
            return
        count = await self._read_word_count(document_path)
        if count is None:
            return
        # Re-resolve after the read: the registry may have changed meanwhile.
        for target in self._word_count_targets(document_path, only_unmeasured):
            target.apply_word_count_measurement(document_path, count)

    async def measure_documents(self, target: WordCountTarget, documents: Iterable[str]) -> None:
        """Measure every tracked document for a single target (full re-derivation)."""
        for document_path in documents:
            if not target.is_tracking(document_path):
                continue
            count = await self._read_word_count(document_path)
            if target not in self.registry:
                logger.debug("Target %s left the registry during re-derivation", target.id)
                return
            if count is not None:
                target.apply_word_count_measurement(document_path, count)

    # -----------------------------------------------------------------------
    # Content events
    # -----------------------------------------------------------------------

    async def on_document_modified(self, document_path: str) -> None:
        elapsed = self._accrue_time(document_path)
        logger.debug("modified %s (+%d ms)", document_path, elapsed)
        await self._measure(document_path)
        self.on_change()

    async def on_document_created(self, document_path: str) -> None:
        logger.debug("created %s", document_path)
        for target in self.registry.snapshot():
            target.on_document_created(document_path)
        await self._measure(document_path)
        self.on_change()

    def on_document_deleted(self, document_path: str) -> None:
        logger.debug("deleted %s", document_path)
        for target in self.registry.snapshot():
            target.on_document_deleted(document_path)
        if self.focused_document == document_path:
            self.focused_document = None
            self.focused_since = None
        self.on_change()

    async def on_document_renamed(self, old_path: str, new_path: str) -> None:
        logger.debug("renamed %s -> %s", old_path, new_path)
        for target in self.registry.snapshot():
            target.on_document_renamed(old_path, new_path)
        if self.focused_document == old_path:
            self.focused_document = new_path
        # Renamed into a target's scope without a carried value: measure now.
        await self._measure(new_path, only_unmeasured=True)
        self.on_change()

    async def on_focus_changed(self, document_path: str | None) -> None:
        if self.focused_document is not None:
            self._accrue_time(self.focused_document)

        if document_path is None:
            self.focused_document = None
            self.focused_since = None
        else:
            self.focused_document = document_path
            self.focused_since = self.clock()
            if any(t.on_focus_opened(document_path) for t in self._word_count_targets(document_path)):
                await self._measure(document_path, only_unmeasured=True)
        logger.debug("focus -> %s", document_path)
        self.on_change()
