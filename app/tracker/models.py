"""Board, tile and goal-tree contract — Pydantic v2 models.

Field names are snake_case in Python; the remote board service speaks
camelCase JSON, handled by the alias generator. All wire models are frozen:
a board snapshot is replaced wholesale, never edited in place.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

TriggerKey = int


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class GoalType(str, Enum):
    item = "item"
    generic = "generic"


class SubmissionStatus(str, Enum):
    not_submitted = "not_submitted"
    pending = "pending"
    accepted = "accepted"
    requires_interaction = "requires_interaction"
    declined = "declined"


# ---------------------------------------------------------------------------
# Goal tree
# ---------------------------------------------------------------------------


class GoalProgress(_WireModel):
    """Server-reported progress. `is_complete` is authoritative for goals."""

    completed_count: int = 0
    total_count: int = 0
    is_complete: bool = False


class ItemTrigger(_WireModel):
    item_id: int | None = None
    base_name: str | None = None
    exact_variant: str | None = None  # e.g. "Undamaged"
    image_url: str | None = None

    @property
    def key(self) -> TriggerKey | None:
        return self.item_id


class GoalGroup(_WireModel):
    type: Literal["group"] = "group"
    id: str | None = None
    order_index: int = 0
    name: str | None = None
    logical_operator: LogicalOperator = LogicalOperator.OR
    min_required_goals: int | None = None  # OR groups only
    children: tuple[GoalTreeNode, ...] = ()
    progress: GoalProgress | None = None

    @field_validator("logical_operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        # Anything other than AND (case-insensitive), null included, is OR.
        if isinstance(value, LogicalOperator):
            return value
        if isinstance(value, str) and value.upper() == "AND":
            return LogicalOperator.AND
        return LogicalOperator.OR

    @field_validator("children", mode="before")
    @classmethod
    def _null_children(cls, value: Any) -> Any:
        return () if value is None else value


class Goal(_WireModel):
    type: Literal["goal"] = "goal"
    id: str | None = None
    order_index: int = 0
    description: str = ""
    target_value: int | None = None
    goal_type: GoalType = GoalType.generic
    item_trigger: ItemTrigger | None = Field(default=None, alias="itemGoal")
    progress: GoalProgress | None = None

    @field_validator("goal_type", mode="before")
    @classmethod
    def _normalize_goal_type(cls, value: Any) -> Any:
        if value is None:
            return GoalType.generic
        if isinstance(value, str) and value.lower() not in GoalType.__members__:
            return GoalType.generic
        return value.lower() if isinstance(value, str) else value

    @property
    def is_complete(self) -> bool:
        return self.progress is not None and self.progress.is_complete

    @property
    def trigger_key(self) -> TriggerKey | None:
        """Key this goal is indexed under; None unless it is an item goal."""
        if self.goal_type is not GoalType.item or self.item_trigger is None:
            return None
        return self.item_trigger.key


class UnknownNode(_WireModel):
    """Any node whose `type` is neither "group" nor "goal"."""

    model_config = ConfigDict(extra="allow")

    type: str | None = None
    id: str | None = None


def _node_kind(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    return kind if kind in ("group", "goal") else "unknown"


GoalTreeNode = Annotated[
    Union[
        Annotated[GoalGroup, Tag("group")],
        Annotated[Goal, Tag("goal")],
        Annotated[UnknownNode, Tag("unknown")],
    ],
    Discriminator(_node_kind),
]

GoalGroup.model_rebuild()


# ---------------------------------------------------------------------------
# Tiles & boards
# ---------------------------------------------------------------------------


class TileSubmission(_WireModel):
    id: str | None = None
    status: SubmissionStatus = SubmissionStatus.not_submitted
    last_updated: datetime | None = None
    submission_count: int = 0


class Tile(_WireModel):
    id: str
    title: str = ""
    description: str = ""
    weight: int = 0
    index: int = 0
    is_hidden: bool = False
    submission: TileSubmission | None = None
    goal_tree: tuple[GoalTreeNode, ...] = ()

    @field_validator("goal_tree", mode="before")
    @classmethod
    def _null_tree(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def is_approved(self) -> bool:
        return self.submission is not None and self.submission.status is SubmissionStatus.accepted


class Board(_WireModel):
    id: str | None = None
    event_id: str | None = None
    title: str = ""
    description: str = ""
    rows: int = 0
    columns: int = 0
    codephrase: str | None = None
    locked: bool = False
    visible: bool = True
    tiles: tuple[Tile, ...] = ()

    @field_validator("tiles", mode="before")
    @classmethod
    def _null_tiles(cls, value: Any) -> Any:
        return () if value is None else value

    def get_tile(self, tile_id: str) -> Tile | None:
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        return None


# ---------------------------------------------------------------------------
# Evaluation results
# ---------------------------------------------------------------------------


class ProgressResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    completed: int = 0
    total: int = 0
    is_complete: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total * 100.0


class TileProgress(BaseModel):
    tile_id: str
    title: str = ""
    approved: bool = False
    progress: ProgressResult


class GoalNodeView(BaseModel):
    """One node of a tile's goal tree, rendered for display."""

    kind: Literal["group", "goal", "unknown"]
    label: str = ""
    status: Literal["complete", "in_progress", "not_started"] = "not_started"
    progress_text: str | None = None  # goals only
    operator: LogicalOperator | None = None  # groups only
    progress: ProgressResult
    children: list[GoalNodeView] = Field(default_factory=list)


class TileTreeView(BaseModel):
    tile_id: str
    title: str = ""
    approved: bool = False
    progress: ProgressResult
    nodes: list[GoalNodeView] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Trigger events & submissions
# ---------------------------------------------------------------------------


class TriggerContext(BaseModel):
    """Where a trigger event came from. `evidence` is opaque (e.g. a PNG)."""

    model_config = ConfigDict(frozen=True)

    source_name: str | None = None  # NPC name, activity name, ...
    source_type: str = "Unknown"  # "NPC loot", "PICKPOCKET", "EVENT", ...
    npc_id: int | None = None
    account_name: str | None = None
    evidence: bytes | None = Field(default=None, repr=False, exclude=True)


class AutoSubmissionMetadata(_WireModel):
    item_id: int | None = None
    npc_id: int | None = None
    source_name: str | None = None
    source_type: str | None = None
    account_name: str | None = None


class SubmissionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    tile_id: str
    trigger_key: TriggerKey
    source: str
    metadata: AutoSubmissionMetadata
    evidence: bytes | None = Field(default=None, repr=False, exclude=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class OutcomeStatus(str, Enum):
    submitted = "submitted"
    cooldown = "cooldown"
    missing = "missing"
    approved = "approved"
    failed = "failed"


class TriggerOutcome(BaseModel):
    tile_id: str
    trigger_key: TriggerKey
    status: OutcomeStatus
    error: str | None = None


class CoordinatorStats(BaseModel):
    tracked_keys: int = 0
    tracked_tiles: int = 0
    pending_cooldowns: int = 0
    total_tiles: int = 0
    board_loaded: bool = False
    auto_submission_enabled: bool = False
    auto_submit_loot: bool = False
