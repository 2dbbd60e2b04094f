"""Shared fixtures for the test suite."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.main import app
from app.runtime import get_board_store, get_coordinator, get_notifications
from app.tracker.board_store import BoardStore
from app.tracker.cooldown import CooldownTable
from app.tracker.coordinator import SubmissionCoordinator
from app.tracker.models import (
    Board,
    Goal,
    GoalGroup,
    GoalProgress,
    GoalType,
    ItemTrigger,
    SubmissionRequest,
    SubmissionStatus,
    Tile,
    TileSubmission,
)
from app.tracker.sinks import NotificationFeed


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def make_goal(
    complete: bool | None = False,
    item_id: int | None = None,
    description: str = "goal",
    target_value: int | None = None,
    completed_count: int = 0,
    base_name: str | None = None,
) -> Goal:
    """Goal leaf. `complete=None` means no server progress at all."""
    progress = None
    if complete is not None:
        progress = GoalProgress(
            completed_count=completed_count or (1 if complete else 0),
            total_count=target_value or 1,
            is_complete=complete,
        )
    if item_id is None:
        return Goal(description=description, target_value=target_value, progress=progress)
    return Goal(
        description=description,
        target_value=target_value,
        goal_type=GoalType.item,
        item_trigger=ItemTrigger(item_id=item_id, base_name=base_name),
        progress=progress,
    )


def make_group(op: str, *children, min_required: int | None = None, name: str | None = None) -> GoalGroup:
    return GoalGroup(
        name=name,
        logical_operator=op,
        min_required_goals=min_required,
        children=tuple(children),
    )


def make_tile(
    tile_id: str,
    *forest,
    status: SubmissionStatus | None = None,
    title: str = "",
) -> Tile:
    submission = TileSubmission(status=status) if status is not None else None
    return Tile(id=tile_id, title=title or tile_id, submission=submission, goal_tree=tuple(forest))


def make_board(*tiles: Tile, board_id: str = "board-1") -> Board:
    return Board(id=board_id, title="Test board", rows=5, columns=5, tiles=tuple(tiles))


def board_payload() -> dict[str, Any]:
    """Board JSON as the remote service sends it (camelCase)."""
    return {
        "id": "b-1",
        "eventId": "e-1",
        "title": "Summer bingo",
        "rows": 2,
        "columns": 2,
        "locked": False,
        "visible": True,
        "tiles": [
            {
                "id": "t-1",
                "title": "Barrows piece",
                "weight": 10,
                "index": 0,
                "isHidden": False,
                "submission": None,
                "goalTree": [
                    {
                        "type": "group",
                        "id": "g-1",
                        "orderIndex": 0,
                        "name": "Any two",
                        "logicalOperator": "OR",
                        "minRequiredGoals": 2,
                        "children": [
                            {
                                "type": "goal",
                                "id": "goal-1",
                                "description": "Ahrim's hood",
                                "targetValue": 1,
                                "goalType": "item",
                                "itemGoal": {"itemId": 4708, "baseName": "Ahrim's hood"},
                                "progress": {"completedCount": 1, "totalCount": 1, "isComplete": True},
                            },
                            {
                                "type": "goal",
                                "id": "goal-2",
                                "description": "Dharok's helm",
                                "targetValue": 1,
                                "goalType": "item",
                                "itemGoal": {
                                    "itemId": 4716,
                                    "baseName": "Dharok's helm",
                                    "exactVariant": "Undamaged",
                                },
                                "progress": {"completedCount": 0, "totalCount": 1, "isComplete": False},
                            },
                            {
                                "type": "goal",
                                "id": "goal-3",
                                "description": "Kill count",
                                "targetValue": 50,
                                "goalType": "generic",
                                "progress": {"completedCount": 50, "totalCount": 50, "isComplete": True},
                            },
                        ],
                    }
                ],
            },
            {
                "id": "t-2",
                "title": "Done already",
                "submission": {"id": "s-1", "status": "accepted", "submissionCount": 1},
                "goalTree": [
                    {
                        "type": "goal",
                        "goalType": "item",
                        "itemGoal": {"itemId": 4708},
                        "progress": {"isComplete": True},
                    }
                ],
            },
        ],
    }


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Millisecond clock under test control."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingSink:
    """SubmissionSink that records requests; can be told to fail."""

    def __init__(self, result: bool = True, error: Exception | None = None):
        self.result = result
        self.error = error
        self.requests: list[SubmissionRequest] = []

    def submit(self, request: SubmissionRequest) -> bool:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def tile_ids(self) -> list[str]:
        return [r.tile_id for r in self.requests]


def make_coordinator(
    board: Board | None = None,
    sink: RecordingSink | None = None,
    clock: FakeClock | None = None,
    notifier: NotificationFeed | None = None,
    **config: Any,
) -> SimpleNamespace:
    """Coordinator wired to an in-memory store, with auto-submission enabled."""
    config.setdefault("auto_submission_enabled", True)
    store = BoardStore()
    sink = sink or RecordingSink()
    clock = clock or FakeClock()
    coordinator = SubmissionCoordinator(
        store,
        sink,
        cooldowns=CooldownTable(5000, clock=clock),
        notifier=notifier,
        config=Settings(**config),
    )
    store.subscribe(coordinator.rebuild_index)
    if board is not None:
        store.replace(board)
    return SimpleNamespace(store=store, sink=sink, clock=clock, coordinator=coordinator)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def tracker():
    """Fresh tracker components, overriding the app's dependencies."""
    notifications = NotificationFeed()
    env = make_coordinator(notifier=notifications)
    env.notifications = notifications

    app.dependency_overrides[get_board_store] = lambda: env.store
    app.dependency_overrides[get_coordinator] = lambda: env.coordinator
    app.dependency_overrides[get_notifications] = lambda: env.notifications
    yield env
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(tracker):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

