"""Targets — one tracked goal each, in two variants sharing one contract.

A target owns a per-document progress map. What a number in that map means
depends on the variant:

- WordCountTarget: the document's absolute word count, plus a per-period
  baseline in ``previous_progress``. Displayed progress is the difference.
- TimeTarget: cumulative milliseconds of active editing. The accumulator
  starts from zero every period, so it is the displayed progress.

Targets never read content themselves; the tracker measures documents and
hands the numbers in.
"""

from __future__ import annotations

import uuid
from abc import abstractmethod
from typing import Annotated, ClassVar, Iterable, Literal, Union

from pydantic import Field

from tracker.kernel.models import CamelModel, Period, TargetKind

# Progress value of a tracked document that has not been measured yet
UNMEASURED = -1

CORPUS_ROOT_PATHS = ("", "/")


def generate_id() -> str:
    return uuid.uuid4().hex


class Target(CamelModel):
    id: str = Field(default_factory=generate_id)
    name: str = "New Target"
    period: Period = Period.daily
    goal: int = 1000
    path: str = ""
    progress: dict[str, int] = Field(default_factory=dict)

    # Progress value given to a tracked document the target has just learned about
    blank_value: ClassVar[int] = 0

    def is_tracking(self, document_path: str) -> bool:
        return self.path in CORPUS_ROOT_PATHS or document_path.startswith(self.path)

    def get_displayed_progress(self) -> dict[str, int]:
        return dict(self.progress)

    def get_total_progress(self) -> int:
        return sum(self.get_displayed_progress().values())

    # -----------------------------------------------------------------------
    # Document lifecycle
    # -----------------------------------------------------------------------

    def on_document_created(self, document_path: str) -> None:
        if self.is_tracking(document_path):
            self.progress.setdefault(document_path, self.blank_value)

    def on_document_deleted(self, document_path: str) -> None:
        self.progress.pop(document_path, None)

    def on_document_renamed(self, old_path: str, new_path: str) -> None:
        carried = self.progress.pop(old_path, None)
        if self.is_tracking(new_path):
            self.progress[new_path] = carried if carried is not None else self.blank_value

    def reset_progress(self, documents: Iterable[str]) -> None:
        """Forget all progress and start over from the tracked subset of ``documents``."""
        self.progress = {doc: self.blank_value for doc in documents if self.is_tracking(doc)}

    @abstractmethod
    def get_next_period_target(self) -> Target:
        """Successor for the next period: new id, same configuration, zero displayed progress."""


class WordCountTarget(Target):
    kind: Literal["wordCount"] = "wordCount"
    previous_progress: dict[str, int] = Field(default_factory=dict)

    def get_displayed_progress(self) -> dict[str, int]:
        displayed: dict[str, int] = {}
        for doc, count in self.progress.items():
            baseline = self.previous_progress.get(doc)
            displayed[doc] = count - baseline if baseline is not None else count
        return displayed

    def _mark_unmeasured(self, document_path: str) -> None:
        # The matching placeholder baseline makes the entry read as 0 until measured.
        self.progress[document_path] = UNMEASURED
        self.previous_progress[document_path] = UNMEASURED

    def needs_measurement(self, document_path: str) -> bool:
        return self.is_tracking(document_path) and self.progress.get(document_path, UNMEASURED) == UNMEASURED

    def on_focus_opened(self, document_path: str) -> bool:
        """Return True when the opened document has no measurement yet.

        The caller is expected to measure it right away; that first
        measurement becomes the document's baseline for the period.
        """
        return self.needs_measurement(document_path)

    def apply_word_count_measurement(self, document_path: str, count: int) -> None:
        if not self.is_tracking(document_path):
            return
        if self.needs_measurement(document_path):
            # Non-periodic targets count absolute totals and keep no baseline.
            if self.period == Period.none:
                self.previous_progress.pop(document_path, None)
            else:
                self.previous_progress[document_path] = count
        self.progress[document_path] = count

    def on_document_created(self, document_path: str) -> None:
        if self.is_tracking(document_path) and document_path not in self.progress:
            self._mark_unmeasured(document_path)

    def on_document_deleted(self, document_path: str) -> None:
        super().on_document_deleted(document_path)
        self.previous_progress.pop(document_path, None)

    def on_document_renamed(self, old_path: str, new_path: str) -> None:
        carried = self.progress.pop(old_path, None)
        baseline = self.previous_progress.pop(old_path, None)
        if not self.is_tracking(new_path):
            return
        if carried is None:
            self._mark_unmeasured(new_path)
            return
        self.progress[new_path] = carried
        if baseline is not None:
            self.previous_progress[new_path] = baseline

    def reset_progress(self, documents: Iterable[str]) -> None:
        self.progress = {}
        self.previous_progress = {}
        for doc in documents:
            if self.is_tracking(doc):
                self._mark_unmeasured(doc)

    def get_next_period_target(self) -> WordCountTarget:
        return self.model_copy(
            update={
                "id": generate_id(),
                "progress": dict(self.progress),
                "previous_progress": dict(self.progress),
            }
        )


class TimeTarget(Target):
    kind: Literal["time"] = "time"
    multiplier: int = 1000  # ms per displayed unit

    def apply_elapsed_time(self, document_path: str, delta_ms: int) -> None:
        if self.is_tracking(document_path):
            self.progress[document_path] = self.progress.get(document_path, 0) + delta_ms

    def get_next_period_target(self) -> TimeTarget:
        return self.model_copy(
            update={
                "id": generate_id(),
                "progress": {doc: 0 for doc in self.progress},
            }
        )


AnyTarget = Annotated[Union[WordCountTarget, TimeTarget], Field(discriminator="kind")]

TARGET_TYPES: dict[TargetKind, type[Target]] = {
    TargetKind.word_count: WordCountTarget,
    TargetKind.time: TimeTarget,
}


def new_target(kind: TargetKind | str) -> Target:
    """A fresh target of ``kind`` with the default configuration."""
    return TARGET_TYPES[TargetKind(kind)]()
