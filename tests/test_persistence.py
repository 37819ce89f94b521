"""Tests for StateStore (via FakeSession) and the debounced saver."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from tests.conftest import FakeSession
from tracker.kernel.persistence import DebouncedSaver, StateStore
from tracker.kernel.state import TrackerState
from tracker.kernel.target import WordCountTarget


def _store(session: FakeSession) -> StateStore:
    return StateStore(lambda: session)


# ---------------------------------------------------------------------------
# StateStore
# ---------------------------------------------------------------------------

class TestStateStore:
    @pytest.mark.asyncio
    async def test_load_empty(self, fake_session):
        assert await _store(fake_session).load() is None
        assert fake_session.statements[0].startswith("CREATE TABLE IF NOT EXISTS tracker_state")

    @pytest.mark.asyncio
    async def test_save_then_load(self, fake_session):
        store = _store(fake_session)
        state = TrackerState(
            daily_reset_hour=4,
            targets=[WordCountTarget(id="w1", progress={"a.md": 80}, previous_progress={"a.md": 50})],
            last_reset=datetime(2026, 2, 15, 4, tzinfo=timezone.utc),
        )
        await store.save(state)
        loaded = await store.load()

        assert loaded.daily_reset_hour == 4
        assert loaded.targets[0].id == "w1"
        assert loaded.targets[0].get_total_progress() == 30
        assert loaded.last_reset == state.last_reset

    @pytest.mark.asyncio
    async def test_stored_as_camel_case_json(self, fake_session):
        await _store(fake_session).save(TrackerState())
        assert '"dailyResetHour"' in fake_session.stored
        assert '"progressHistory"' in fake_session.stored

    @pytest.mark.asyncio
    async def test_schema_created_once(self, fake_session):
        store = _store(fake_session)
        await store.save(TrackerState())
        await store.save(TrackerState())
        await store.load()
        creates = [s for s in fake_session.statements if s.startswith("CREATE")]
        assert len(creates) == 1

    @pytest.mark.asyncio
    async def test_upsert_on_single_row(self, fake_session):
        await _store(fake_session).save(TrackerState())
        insert = [s for s in fake_session.statements if s.startswith("INSERT")][0]
        assert "ON CONFLICT (id) DO UPDATE" in insert

    @pytest.mark.asyncio
    async def test_unreadable_state_starts_fresh(self):
        session = FakeSession(stored='{"dailyResetHour": 99}')
        assert await _store(session).load() is None


# ---------------------------------------------------------------------------
# DebouncedSaver
# ---------------------------------------------------------------------------

class TestDebouncedSaver:
    @pytest.mark.asyncio
    async def test_coalesces_bursts(self):
        save = AsyncMock()
        saver = DebouncedSaver(save, delay=0.01)
        for _ in range(5):
            saver.schedule_save()
        assert saver.dirty and saver.pending
        await asyncio.sleep(0.05)
        assert save.await_count == 1
        assert not saver.dirty
        assert not saver.pending

    @pytest.mark.asyncio
    async def test_nothing_written_before_delay(self):
        save = AsyncMock()
        saver = DebouncedSaver(save, delay=10)
        saver.schedule_save()
        await asyncio.sleep(0.01)
        save.assert_not_awaited()
        await saver.force_save()

    @pytest.mark.asyncio
    async def test_force_save_flushes_and_cancels_timer(self):
        save = AsyncMock()
        saver = DebouncedSaver(save, delay=0.01)
        saver.schedule_save()
        await saver.force_save()
        assert save.await_count == 1
        assert not saver.pending
        await asyncio.sleep(0.03)
        assert save.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_write_stays_dirty(self):
        save = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down")))
        saver = DebouncedSaver(save, delay=0.01)
        await saver.force_save()
        assert saver.dirty

    @pytest.mark.asyncio
    async def test_write_through_store(self, fake_session):
        store = _store(fake_session)
        saver = DebouncedSaver(lambda: store.save(TrackerState(max_idle_ms=1234)), delay=0.01)
        saver.schedule_save()
        await asyncio.sleep(0.05)
        assert '"maxIdleMs":1234' in fake_session.stored
        assert fake_session.commits >= 1
