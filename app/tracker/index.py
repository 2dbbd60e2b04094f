"""Reverse index: trigger key (item id) -> tiles whose goal tree mentions it.

Built once per board snapshot and never patched. Owners swap the whole
index reference when the board changes, so readers see either the old or
the new index, never a half-built one.

Indexing answers "is this item anywhere in the tile's tree", not "is it on
a satisfying path": AND/OR logic is ignored here and completion stays with
the remote service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from app.tracker.models import Goal, GoalGroup, GoalTreeNode, Tile, TriggerKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IndexEntry:
    tile_id: str
    node: Goal


@dataclass(frozen=True, slots=True)
class RequirementIndex:
    buckets: Mapping[TriggerKey, tuple[IndexEntry, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def empty(cls) -> RequirementIndex:
        return cls()

    def __len__(self) -> int:
        return len(self.buckets)

    def __bool__(self) -> bool:
        return bool(self.buckets)

    def is_tracked(self, key: TriggerKey) -> bool:
        return bool(self.buckets.get(key))

    def entries_for(self, key: TriggerKey) -> tuple[IndexEntry, ...]:
        return self.buckets.get(key, ())

    def tiles_for(self, key: TriggerKey) -> list[str]:
        """Tile ids in the key's bucket, deduplicated, first-seen order.

        Approval may have changed since the index was built; callers must
        re-check the live tile before acting.
        """
        seen: dict[str, None] = {}
        for entry in self.entries_for(key):
            seen.setdefault(entry.tile_id, None)
        return list(seen)

    @property
    def tracked_keys(self) -> int:
        return len(self.buckets)

    @property
    def tracked_tiles(self) -> int:
        return len({e.tile_id for entries in self.buckets.values() for e in entries})


def _collect_item_goals(nodes: Iterable[GoalTreeNode], path: frozenset[int]) -> Iterable[Goal]:
    """Depth-first walk yielding every indexable goal. Groups are always entered."""
    for node in nodes:
        if isinstance(node, Goal):
            if node.trigger_key is not None:
                yield node
            else:
                logger.debug("Goal %s not indexed (goal_type=%s)", node.id, node.goal_type.value)
        elif isinstance(node, GoalGroup):
            if id(node) in path:
                logger.warning("Group %s contains itself; not re-entering", node.id)
                continue
            yield from _collect_item_goals(node.children, path | {id(node)})
        else:
            logger.debug("Skipping unrecognised node type=%r", getattr(node, "type", None))


def build_index(tiles: Iterable[Tile] | None) -> RequirementIndex:
    """Build a fresh index from a board's tiles, skipping approved tiles."""
    if tiles is None:
        return RequirementIndex.empty()

    buckets: dict[TriggerKey, list[IndexEntry]] = {}
    for tile in tiles:
        if tile.is_approved:
            logger.debug("Skipping tile %s (already approved)", tile.id)
            continue
        for goal in _collect_item_goals(tile.goal_tree, frozenset()):
            buckets.setdefault(goal.trigger_key, []).append(IndexEntry(tile.id, goal))

    index = RequirementIndex(
        MappingProxyType({key: tuple(entries) for key, entries in buckets.items()})
    )
    logger.debug(
        "Built requirement index: %d keys across %d tiles",
        index.tracked_keys,
        index.tracked_tiles,
    )
    return index
