"""Submission coordinator — turns trigger events into auto-submissions.

Pipeline for one event (e.g. an item drop):

1. bail out if auto-submission is off, no board is loaded, or the key is
   not in the requirement index;
2. for every candidate tile, re-check the live board (the tile may have
   been approved or removed since the index was built);
3. claim the tile's cooldown window, then hand a SubmissionRequest to the
   sink.

The cooldown is claimed before the sink is called and is kept even when
the sink fails, so duplicate or re-entrant events cannot double-submit and
persistent failures are not hammered. A failure on one tile never stops
the remaining tiles.
"""

from __future__ import annotations

import logging
from typing import Iterable

from app.config import Settings, settings as default_settings
from app.tracker.board_store import BoardProvider
from app.tracker.cooldown import CooldownTable
from app.tracker.index import RequirementIndex, build_index
from app.tracker.models import (
    AutoSubmissionMetadata,
    Board,
    CoordinatorStats,
    OutcomeStatus,
    SubmissionRequest,
    TriggerContext,
    TriggerKey,
    TriggerOutcome,
)
from app.tracker.sinks import NotificationSink, SubmissionSink

logger = logging.getLogger(__name__)


class SubmissionCoordinator:
    def __init__(
        self,
        board_provider: BoardProvider,
        sink: SubmissionSink,
        cooldowns: CooldownTable | None = None,
        notifier: NotificationSink | None = None,
        config: Settings | None = None,
    ):
        self._provider = board_provider
        self._sink = sink
        self._config = config if config is not None else default_settings
        self._cooldowns = (
            cooldowns if cooldowns is not None else CooldownTable(self._config.submission_cooldown_ms)
        )
        self._notifier = notifier
        self._index = RequirementIndex.empty()

    @property
    def index(self) -> RequirementIndex:
        return self._index

    @property
    def cooldowns(self) -> CooldownTable:
        return self._cooldowns

    # ------------------------------------------------------------------
    # Board changes
    # ------------------------------------------------------------------

    def rebuild_index(self, board: Board | None) -> RequirementIndex:
        """Build a new index for `board` and swap it in as one reference."""
        index = build_index(board.tiles if board is not None else None)
        self._index = index
        logger.info(
            "Requirement index rebuilt: %d items across %d tiles",
            index.tracked_keys,
            index.tracked_tiles,
        )
        return index

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _should_process(self) -> bool:
        if not self._config.auto_submission_enabled:
            logger.debug("Auto-submission disabled in config")
            return False
        if not self._config.auto_submit_loot:
            logger.debug("Loot auto-submission disabled in config")
            return False
        if self._provider.current_snapshot() is None:
            logger.debug("No current board loaded")
            return False
        return True

    def on_trigger_event(
        self,
        key: TriggerKey,
        context: TriggerContext | None = None,
    ) -> list[TriggerOutcome]:
        """Handle one trigger key. Returns one outcome per candidate tile."""
        if not self._should_process():
            return []

        index = self._index
        if not index:
            logger.warning("Requirement index has no trackable tiles. Stats: %s", self.stats())
            return []
        if not index.is_tracked(key):
            return []

        context = context or TriggerContext()
        logger.info("Found required item %s from %s", key, context.source_name)

        board = self._provider.current_snapshot()
        outcomes: list[TriggerOutcome] = []
        for tile_id in index.tiles_for(key):
            try:
                outcome = self._process_tile(board, index, tile_id, key, context)
            except Exception as exc:
                logger.exception("Failed to process tile %s for item %s", tile_id, key)
                outcome = TriggerOutcome(
                    tile_id=tile_id, trigger_key=key, status=OutcomeStatus.failed, error=str(exc)
                )
            outcomes.append(outcome)
        return outcomes

    def on_items_received(
        self,
        keys: Iterable[TriggerKey],
        context: TriggerContext | None = None,
    ) -> list[TriggerOutcome]:
        """Handle a batch of keys from one occurrence (e.g. a loot drop)."""
        outcomes: list[TriggerOutcome] = []
        for key in keys:
            outcomes.extend(self.on_trigger_event(key, context))
        return outcomes

    def _process_tile(
        self,
        board: Board | None,
        index: RequirementIndex,
        tile_id: str,
        key: TriggerKey,
        context: TriggerContext,
    ) -> TriggerOutcome:
        def outcome(status: OutcomeStatus, error: str | None = None) -> TriggerOutcome:
            return TriggerOutcome(tile_id=tile_id, trigger_key=key, status=status, error=error)

        tile = board.get_tile(tile_id) if board is not None else None
        if tile is None:
            logger.debug("Tile %s no longer on the board, skipping", tile_id)
            return outcome(OutcomeStatus.missing)
        if tile.is_approved:
            logger.debug("Tile %s already approved, skipping", tile_id)
            return outcome(OutcomeStatus.approved)
        if not self._cooldowns.try_acquire(tile_id):
            logger.debug("Tile %s is on submission cooldown, skipping", tile_id)
            return outcome(OutcomeStatus.cooldown)

        logger.info("Auto-submitting tile %s for item %s from %s", tile_id, key, context.source_name)
        request = SubmissionRequest(
            tile_id=tile_id,
            trigger_key=key,
            source=context.source_name or context.source_type,
            metadata=AutoSubmissionMetadata(
                item_id=key,
                npc_id=context.npc_id,
                source_name=context.source_name,
                source_type=context.source_type,
                account_name=context.account_name,
            ),
            evidence=context.evidence,
        )
        try:
            accepted = self._sink.submit(request)
        except Exception as exc:
            logger.error("Submission of tile %s failed: %s", tile_id, exc)
            return outcome(OutcomeStatus.failed, str(exc))
        if not accepted:
            logger.error("Submission of tile %s was rejected", tile_id)
            return outcome(OutcomeStatus.failed, "Submission rejected")

        self._notify_submitted(index, tile_id, key)
        return outcome(OutcomeStatus.submitted)

    def _notify_submitted(self, index: RequirementIndex, tile_id: str, key: TriggerKey) -> None:
        if self._notifier is None or not self._config.show_auto_submit_notifications:
            return
        item_name = f"Item #{key}"
        for entry in index.entries_for(key):
            trigger = entry.node.item_trigger
            if entry.tile_id == tile_id and trigger is not None and trigger.base_name:
                item_name = trigger.base_name
                break
        try:
            self._notifier.notify("Bingo Item", f"Obtained {item_name} - Tile submitted!")
        except Exception:
            logger.warning("Failed to show auto-submission notification", exc_info=True)

    # ------------------------------------------------------------------
    # Housekeeping & diagnostics
    # ------------------------------------------------------------------

    def sweep_cooldowns(self) -> int:
        return self._cooldowns.sweep()

    def stats(self) -> CoordinatorStats:
        board = self._provider.current_snapshot()
        index = self._index
        return CoordinatorStats(
            tracked_keys=index.tracked_keys,
            tracked_tiles=index.tracked_tiles,
            pending_cooldowns=len(self._cooldowns),
            total_tiles=len(board.tiles) if board is not None else 0,
            board_loaded=board is not None,
            auto_submission_enabled=self._config.auto_submission_enabled,
            auto_submit_loot=self._config.auto_submit_loot,
        )
