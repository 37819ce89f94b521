"""Shared fixtures for the test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from tracker.kernel.errors import ContentReadError
from tracker.kernel.models import TrackerConfig
from tracker.kernel.registry import TargetRegistry
from tracker.kernel.router import get_service
from tracker.kernel.service import TrackerService
from tracker.kernel.state import TrackerState
from tracker.main import app

# Sunday, midday UTC
T0 = datetime(2026, 2, 15, 12, 0, tzinfo=timezone.utc)


def words(n: int) -> str:
    return " ".join(["word"] * n)


# ---------------------------------------------------------------------------
# Fake clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Fake content source
# ---------------------------------------------------------------------------

class FakeContentSource:
    """In-memory corpus. Reads can be made to fail or to wait on a gate."""

    def __init__(self, documents: dict[str, str] | None = None):
        self.documents: dict[str, str] = dict(documents or {})
        self.failing: set[str] = set()
        self.reads: list[str] = []
        self.gate: asyncio.Event | None = None

    async def read_text(self, document_path: str) -> str:
        self.reads.append(document_path)
        if self.gate is not None:
            await self.gate.wait()
        if document_path in self.failing or document_path not in self.documents:
            raise ContentReadError(document_path, "not available")
        return self.documents[document_path]

    def list_documents(self) -> list[str]:
        return sorted(self.documents)

    def path_exists(self, path: str) -> bool:
        if path.strip() in ("", "/"):
            return True
        folder = path.rstrip("/") + "/"
        return any(doc == path or doc.startswith(folder) for doc in self.documents)


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession backing the single tracker_state row."""

    def __init__(self, stored: str | None = None):
        self.stored = stored
        self.statements: list[str] = []
        self.commits = 0

    async def execute(self, stmt, params=None):
        sql = str(stmt)
        self.statements.append(sql)
        if sql.startswith("SELECT"):
            return FakeResult([(self.stored,)] if self.stored is not None else [])
        if sql.startswith("INSERT"):
            self.stored = params["data"]
        return FakeResult([])

    async def commit(self):
        self.commits += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[tuple[Any, ...]]):
        self._rows = rows

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def content() -> FakeContentSource:
    return FakeContentSource(
        {
            "notes/a.md": words(50),
            "notes/b.md": words(10),
            "journal/today.md": words(5),
        }
    )


@pytest.fixture()
def config() -> TrackerConfig:
    return TrackerConfig(max_idle_ms=30_000)


@pytest.fixture()
def registry() -> TargetRegistry:
    return TargetRegistry()


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def service(content, clock) -> TrackerService:
    return TrackerService(TrackerState(last_reset=clock()), content, clock, store=None, save_delay=0.01)


@pytest.fixture()
async def client(service):
    """Route requests to the in-memory service; no lifespan, no DB."""
    app.dependency_overrides[get_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    service.scheduler.stop()
