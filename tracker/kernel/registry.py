"""Ordered collection of live targets."""

from __future__ import annotations

from typing import Iterable, Iterator

from tracker.kernel.errors import TargetNotFoundError
from tracker.kernel.target import Target


class TargetRegistry:
    def __init__(self, targets: Iterable[Target] = ()):
        self._targets: list[Target] = list(targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, target: object) -> bool:
        return any(t is target for t in self._targets)

    def snapshot(self) -> list[Target]:
        """Copy of the current order; safe to iterate while handlers mutate the registry."""
        return list(self._targets)

    def get(self, target_id: str) -> Target | None:
        return next((t for t in self._targets if t.id == target_id), None)

    def require(self, target_id: str) -> Target:
        target = self.get(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)
        return target

    def add(self, target: Target) -> Target:
        self._targets.append(target)
        return target

    def delete(self, target_id: str) -> Target:
        index = self._index_of(target_id)
        return self._targets.pop(index)

    def replace(self, target_id: str, successor: Target) -> Target:
        """Swap the target in place, keeping its position. Returns the old target."""
        index = self._index_of(target_id)
        previous = self._targets[index]
        self._targets[index] = successor
        return previous

    def _index_of(self, target_id: str) -> int:
        for i, target in enumerate(self._targets):
            if target.id == target_id:
                return i
        raise TargetNotFoundError(target_id)
