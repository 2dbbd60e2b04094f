"""Outbound collaborators of the coordinator: submission and notification sinks."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, Field

from app.tracker.board_store import BoardStore
from app.tracker.client import TrackerClient, TrackerClientError
from app.tracker.models import SubmissionRequest

logger = logging.getLogger(__name__)


class SubmissionSink(Protocol):
    def submit(self, request: SubmissionRequest) -> bool:
        """Accept a completion attempt. False (or raising) means it failed."""
        ...


class NotificationSink(Protocol):
    def notify(self, title: str, message: str) -> None: ...


class Notification(BaseModel):
    title: str
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationFeed:
    """Bounded, newest-last feed polled by the presentation layer."""

    def __init__(self, maxlen: int = 50):
        self._items: deque[Notification] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def notify(self, title: str, message: str) -> None:
        with self._lock:
            self._items.append(Notification(title=title, message=message))
        logger.info("Notification: %s - %s", title, message)

    def recent(self, limit: int | None = None) -> list[Notification]:
        with self._lock:
            items = list(self._items)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items


class HttpSubmissionSink:
    """Posts submissions to the remote service without blocking the caller.

    `submit` schedules delivery on the running event loop and returns at
    once. When the service answers with the updated board it replaces the
    snapshot, which rebuilds the requirement index.
    """

    def __init__(
        self,
        client: TrackerClient,
        store: BoardStore,
        notifier: NotificationSink | None = None,
    ):
        self._client = client
        self._store = store
        self._notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, request: SubmissionRequest) -> bool:
        if not self._client.has_api_key:
            logger.error("Cannot submit tile %s: no API key configured", request.tile_id)
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Cannot submit tile %s: no running event loop", request.tile_id)
            return False

        task = loop.create_task(self._deliver(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _deliver(self, request: SubmissionRequest) -> None:
        try:
            board = await self._client.submit_tile(
                request.tile_id, request.evidence, request.metadata
            )
        except TrackerClientError as exc:
            logger.error("Auto-submission of tile %s failed: %s", request.tile_id, exc)
            if self._notifier is not None:
                try:
                    self._notifier.notify("BingoScape", f"Auto-submission failed: {exc}")
                except Exception:
                    logger.warning("Notification failed", exc_info=True)
            return
        except Exception:
            logger.exception("Delivery of tile %s failed", request.tile_id)
            return
        try:
            self._store.replace(board)
        except Exception:
            logger.exception("Applying the board returned for tile %s failed", request.tile_id)

    async def drain(self) -> None:
        """Wait for every in-flight delivery (used at shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
