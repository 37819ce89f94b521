import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tracker.config import settings
from tracker.db import async_session
from tracker.kernel.clock import system_clock
from tracker.kernel.content import DirectoryContentSource
from tracker.kernel.models import TrackerConfig
from tracker.kernel.persistence import StateStore
from tracker.kernel.router import router as tracker_router
from tracker.kernel.service import TrackerService

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def default_config() -> TrackerConfig:
    return TrackerConfig(
        daily_reset_hour=settings.daily_reset_hour,
        weekly_reset_day=settings.weekly_reset_day,
        max_idle_ms=settings.max_idle_ms,
        use_comments_in_word_count=settings.use_comments_in_word_count,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = await TrackerService.load(
        StateStore(async_session),
        DirectoryContentSource(settings.corpus_root),
        system_clock(settings.default_tz),
        defaults=default_config(),
        save_delay=settings.save_debounce_seconds,
    )
    await service.on_startup()
    app.state.tracker_service = service
    logger.info("Tracker started with %d target(s)", len(service.registry))
    try:
        yield
    finally:
        await service.on_shutdown()
        app.state.tracker_service = None


app = FastAPI(title="TargetTracker", version="0.1.0", lifespan=lifespan)
app.include_router(tracker_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "tracker": {
            "targets": "/tracker/targets",
            "target": "/tracker/targets/{id}",
            "history_year": "/tracker/history/year",
            "config": "/tracker/config",
            "events": "/tracker/events/{created,modified,deleted,renamed,focus}",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
