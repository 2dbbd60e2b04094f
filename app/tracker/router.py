"""Tracker HTTP router — board snapshot, progress, trigger events, diagnostics."""

from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.auth import verify_api_key
from app.config import settings
from app.runtime import get_board_store, get_client, get_coordinator, get_notifications
from app.tracker.board_store import BoardStore, refresh_board
from app.tracker.client import TrackerClient, TrackerClientError
from app.tracker.coordinator import SubmissionCoordinator
from app.tracker.evaluator import tile_progress, tile_tree_view
from app.tracker.models import (
    Board,
    CoordinatorStats,
    TileProgress,
    TileTreeView,
    TriggerContext,
    TriggerOutcome,
)
from app.tracker.sinks import Notification, NotificationFeed

router = APIRouter(prefix="/tracker", tags=["tracker"])


class TriggerEventBody(BaseModel):
    items: list[int] = Field(default_factory=list, description="Item ids obtained")
    source_name: str | None = None
    source_type: str = "Unknown"
    npc_id: int | None = None
    account_name: str | None = None
    evidence_b64: str | None = Field(default=None, description="Base64 screenshot (PNG)")


class TriggerEventResult(BaseModel):
    items: int
    outcomes: list[TriggerOutcome] = Field(default_factory=list)


def _require_board(store: BoardStore) -> Board:
    board = store.current_snapshot()
    if board is None:
        raise HTTPException(status_code=409, detail="No board loaded")
    return board


def _summary(board: Board | None, coordinator: SubmissionCoordinator) -> dict:
    return {
        "board_id": board.id if board is not None else None,
        "tiles": len(board.tiles) if board is not None else 0,
        "stats": coordinator.stats().model_dump(),
    }


# ---------------------------------------------------------------------------
# /tracker/board
# ---------------------------------------------------------------------------


@router.put("/board")
async def put_board(
    board: Board,
    _: str = Depends(verify_api_key),
    store: BoardStore = Depends(get_board_store),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
) -> dict:
    """Replace the board snapshot wholesale."""
    store.replace(board)
    return _summary(board, coordinator)


@router.delete("/board")
async def delete_board(
    _: str = Depends(verify_api_key),
    store: BoardStore = Depends(get_board_store),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
) -> dict:
    store.replace(None)
    return _summary(None, coordinator)


@router.post("/board/refresh")
async def post_board_refresh(
    _: str = Depends(verify_api_key),
    store: BoardStore = Depends(get_board_store),
    client: TrackerClient = Depends(get_client),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
    bingo_id: str | None = Query(default=None, description="Board id (default: BINGO_ID)"),
) -> dict:
    target = bingo_id or settings.bingo_id
    if not target:
        raise HTTPException(status_code=422, detail="No bingo_id given or configured")
    try:
        board = await refresh_board(client, store, target)
    except TrackerClientError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return _summary(board, coordinator)


@router.get("/board/progress", response_model=list[TileProgress])
async def get_board_progress(
    _: str = Depends(verify_api_key),
    store: BoardStore = Depends(get_board_store),
) -> list[TileProgress]:
    board = _require_board(store)
    return [
        TileProgress(tile_id=t.id, title=t.title, approved=t.is_approved, progress=tile_progress(t))
        for t in board.tiles
    ]


@router.get("/tiles/{tile_id}/progress", response_model=TileProgress)
async def get_tile_progress(
    tile_id: str,
    _: str = Depends(verify_api_key),
    store: BoardStore = Depends(get_board_store),
) -> TileProgress:
    board = _require_board(store)
    tile = board.get_tile(tile_id)
    if tile is None:
        raise HTTPException(status_code=404, detail=f"Unknown tile: {tile_id}")
    return TileProgress(
        tile_id=tile.id, title=tile.title, approved=tile.is_approved, progress=tile_progress(tile)
    )


@router.get("/tiles/{tile_id}/tree", response_model=TileTreeView)
async def get_tile_tree(
    tile_id: str,
    _: str = Depends(verify_api_key),
    store: BoardStore = Depends(get_board_store),
) -> TileTreeView:
    """Goal tree of one tile with display labels and per-node status."""
    board = _require_board(store)
    tile = board.get_tile(tile_id)
    if tile is None:
        raise HTTPException(status_code=404, detail=f"Unknown tile: {tile_id}")
    return tile_tree_view(tile)


# ---------------------------------------------------------------------------
# /tracker/events
# ---------------------------------------------------------------------------


@router.post("/events", response_model=TriggerEventResult)
async def post_events(
    body: TriggerEventBody,
    _: str = Depends(verify_api_key),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
) -> TriggerEventResult:
    evidence = None
    if body.evidence_b64:
        try:
            evidence = base64.b64decode(body.evidence_b64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=422, detail="evidence_b64 is not valid base64")

    context = TriggerContext(
        source_name=body.source_name,
        source_type=body.source_type,
        npc_id=body.npc_id,
        account_name=body.account_name,
        evidence=evidence,
    )
    outcomes = coordinator.on_items_received(body.items, context)
    return TriggerEventResult(items=len(body.items), outcomes=outcomes)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=CoordinatorStats)
async def get_stats(
    _: str = Depends(verify_api_key),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
) -> CoordinatorStats:
    return coordinator.stats()


@router.get("/notifications", response_model=list[Notification])
async def get_notifications_feed(
    _: str = Depends(verify_api_key),
    feed: NotificationFeed = Depends(get_notifications),
    limit: int | None = Query(default=None, ge=0, description="Most recent N"),
) -> list[Notification]:
    return feed.recent(limit)
