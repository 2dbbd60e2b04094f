import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.runtime import board_store, client, coordinator, submission_sink
from app.tracker.board_store import poll_board
from app.tracker.router import router as tracker_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _sweep_cooldowns(interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        coordinator.sweep_cooldowns()


@asynccontextmanager
async def lifespan(_: FastAPI):
    tasks: list[asyncio.Task] = []
    if settings.cooldown_sweep_interval_s > 0:
        tasks.append(asyncio.create_task(_sweep_cooldowns(settings.cooldown_sweep_interval_s)))
    if settings.bingo_id and settings.board_refresh_interval_s > 0:
        logger.info("Polling board %s every %ss", settings.bingo_id, settings.board_refresh_interval_s)
        tasks.append(
            asyncio.create_task(
                poll_board(client, board_store, settings.bingo_id, settings.board_refresh_interval_s)
            )
        )
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await submission_sink.drain()
        await client.aclose()


app = FastAPI(title="TileTracker", version="0.1.0", lifespan=lifespan)
app.include_router(tracker_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "tracker": {
            "board": "/tracker/board",
            "board_refresh": "/tracker/board/refresh",
            "board_progress": "/tracker/board/progress",
            "tile_progress": "/tracker/tiles/{tile_id}/progress",
            "tile_tree": "/tracker/tiles/{tile_id}/tree",
            "events": "/tracker/events",
            "stats": "/tracker/stats",
            "notifications": "/tracker/notifications",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
