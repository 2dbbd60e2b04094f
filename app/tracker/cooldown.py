"""Per-tile submission cooldown.

A tile may be auto-submitted at most once per window (5s by default).
The table is safe to share between the event path and the housekeeping
sweep: every read-decide-write happens under one lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 5000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class CooldownTable:
    """tile id -> timestamp (ms) of the last triggered submission attempt."""

    def __init__(
        self,
        window_ms: float = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.window_ms = window_ms
        self._clock = clock
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, last: float, now: float) -> bool:
        return now - last >= self.window_ms

    def is_on_cooldown(self, tile_id: str) -> bool:
        """Check without claiming. Expired entries are evicted on lookup."""
        with self._lock:
            last = self._entries.get(tile_id)
            if last is None:
                return False
            if self._expired(last, self._clock()):
                del self._entries[tile_id]
                return False
            return True

    def try_acquire(self, tile_id: str) -> bool:
        """Claim the tile's window. False if it is still cooling down."""
        with self._lock:
            now = self._clock()
            last = self._entries.get(tile_id)
            if last is not None and not self._expired(last, now):
                return False
            self._entries[tile_id] = now
            return True

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [tid for tid, last in self._entries.items() if self._expired(last, now)]
            for tid in stale:
                del self._entries[tid]
        if stale:
            logger.debug("Evicted %d expired cooldown entries", len(stale))
        return len(stale)
