"""Persistence — debounced writes of the whole tracker state.

The state is small and always written as one JSON document into a single
row of ``tracker_state``. Writes are coalesced behind a timer; edits and
shutdown force an immediate flush. Nothing in the kernel waits for a
scheduled write.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tracker.kernel.state import TrackerState

logger = logging.getLogger(__name__)

STATE_ROW_ID = 1

_CREATE_TABLE = (
    "CREATE TABLE IF NOT EXISTS tracker_state ("
    "id INTEGER PRIMARY KEY, "
    "data TEXT NOT NULL, "
    "updated_at TIMESTAMP WITH TIME ZONE NOT NULL)"
)
_SELECT_STATE = "SELECT data FROM tracker_state WHERE id = :id"
_UPSERT_STATE = (
    "INSERT INTO tracker_state (id, data, updated_at) "
    "VALUES (:id, :data, :updated_at) "
    "ON CONFLICT (id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at"
)


class StateStore:
    """Loads and saves TrackerState through an async SQLAlchemy session factory."""

    def __init__(self, session_factory: Callable[[], Any]):
        self.session_factory = session_factory
        self._schema_ready = False

    async def _ensure_schema(self, session: Any) -> None:
        if self._schema_ready:
            return
        await session.execute(text(_CREATE_TABLE))
        await session.commit()
        self._schema_ready = True

    async def load(self) -> TrackerState | None:
        """Return the stored state, or None when there is none or it cannot be parsed."""
        async with self.session_factory() as session:
            await self._ensure_schema(session)
            result = await session.execute(text(_SELECT_STATE), {"id": STATE_ROW_ID})
            row = result.fetchone()
        if row is None:
            return None
        try:
            return TrackerState.model_validate_json(row[0])
        except PydanticValidationError as exc:
            logger.warning("Stored tracker state is unreadable, starting fresh: %s", exc)
            return None

    async def save(self, state: TrackerState) -> None:
        async with self.session_factory() as session:
            await self._ensure_schema(session)
            await session.execute(
                text(_UPSERT_STATE),
                {"id": STATE_ROW_ID, "data": state.to_json(), "updated_at": datetime.now(timezone.utc)},
            )
            await session.commit()


class DebouncedSaver:
    """Dirty flag + timer. ``schedule_save`` coalesces, ``force_save`` flushes now."""

    def __init__(self, save: Callable[[], Awaitable[None]], delay: float = 5.0):
        self._save = save
        self.delay = delay
        self.dirty = False
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule_save(self) -> None:
        self.dirty = True
        if self._handle is not None:
            self._handle.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        if not self.dirty:
            return
        task = asyncio.get_running_loop().create_task(self._write())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def force_save(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        await self._write()

    async def _write(self) -> None:
        self.dirty = False
        try:
            await self._save()
        except SQLAlchemyError:
            # Left dirty: the next scheduled or forced save retries.
            self.dirty = True
            logger.exception("Saving tracker state failed")
