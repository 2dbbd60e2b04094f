"""Current board snapshot holder and remote refresh loop.

The store is the single source of truth for "what does the board look like
right now". Snapshots are replaced wholesale; listeners (the submission
coordinator) are told about every replacement so they can rebuild derived
state.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Protocol

from app.tracker.models import Board

logger = logging.getLogger(__name__)

BoardListener = Callable[[Board | None], None]


class BoardProvider(Protocol):
    def current_snapshot(self) -> Board | None: ...


class BoardFetcher(Protocol):
    async def fetch_board(self, bingo_id: str) -> Board: ...


class BoardStore:
    def __init__(self, board: Board | None = None):
        self._board = board
        self._listeners: list[BoardListener] = []
        self._lock = threading.Lock()

    def current_snapshot(self) -> Board | None:
        return self._board

    def subscribe(self, listener: BoardListener) -> None:
        self._listeners.append(listener)

    def replace(self, board: Board | None) -> None:
        """Swap in a new snapshot and notify listeners in order."""
        with self._lock:
            self._board = board
            for listener in self._listeners:
                listener(board)
        if board is None:
            logger.info("Board cleared")
        else:
            logger.info("Board %s loaded with %d tiles", board.id, len(board.tiles))


async def refresh_board(fetcher: BoardFetcher, store: BoardStore, bingo_id: str) -> Board:
    """Pull the board from the remote service and replace the snapshot."""
    board = await fetcher.fetch_board(bingo_id)
    store.replace(board)
    return board


async def poll_board(
    fetcher: BoardFetcher,
    store: BoardStore,
    bingo_id: str,
    interval_s: float,
) -> None:
    """Refresh forever. Failures are logged and retried on the next tick."""
    while True:
        try:
            await refresh_board(fetcher, store, bingo_id)
        except Exception:
            logger.exception("Board refresh failed for %s", bingo_id)
        await asyncio.sleep(interval_s)
