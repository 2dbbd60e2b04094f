"""Goal-tree progress evaluation — pure, stateless, never raises.

Goals are complete only when the server says so (`progress.is_complete`).
Groups combine their children with AND / OR logic; OR groups may require
more than one child (`min_required_goals`).
"""

from __future__ import annotations

from typing import Sequence

from app.tracker.models import (
    Goal,
    GoalGroup,
    GoalNodeView,
    GoalTreeNode,
    GoalType,
    LogicalOperator,
    ProgressResult,
    Tile,
    TileTreeView,
)

_INCOMPLETE = ProgressResult(completed=0, total=0, is_complete=False)


def clamp_required(min_required_goals: int | None, child_count: int) -> int:
    """Number of children an OR group needs, clamped to [1, child_count]."""
    if min_required_goals is None or min_required_goals < 1:
        required = 1
    else:
        required = min_required_goals
    return max(1, min(required, child_count))


def _evaluate(node: GoalTreeNode, path: frozenset[int]) -> ProgressResult:
    if isinstance(node, Goal):
        done = node.is_complete
        return ProgressResult(completed=1 if done else 0, total=1, is_complete=done)

    if not isinstance(node, GoalGroup) or id(node) in path:
        # Unknown shape, or a group that contains itself
        return _INCOMPLETE

    children = node.children
    if not children:
        return _INCOMPLETE

    inner = path | {id(node)}
    # No short-circuit: every child is evaluated so counts stay exact.
    results = [_evaluate(child, inner) for child in children]
    complete_count = sum(1 for r in results if r.is_complete)

    if node.logical_operator is not LogicalOperator.AND:
        required = clamp_required(node.min_required_goals, len(children))
        return ProgressResult(
            completed=complete_count,
            total=required,
            is_complete=complete_count >= required,
        )

    return ProgressResult(
        completed=complete_count,
        total=len(children),
        is_complete=complete_count == len(children),
    )


def evaluate_node(node: GoalTreeNode) -> ProgressResult:
    """Progress of a single node and its subtree."""
    try:
        return _evaluate(node, frozenset())
    except (AttributeError, TypeError, RecursionError):
        return _INCOMPLETE


def evaluate(forest: Sequence[GoalTreeNode] | None) -> ProgressResult:
    """Progress of a tile's goal forest.

    A single group root reports its own counts. Anything else (no roots,
    several roots, a lone goal) reports how many roots are complete.
    """
    if not forest:
        return _INCOMPLETE

    if len(forest) == 1 and isinstance(forest[0], GoalGroup):
        return evaluate_node(forest[0])

    complete_roots = sum(1 for root in forest if evaluate_node(root).is_complete)
    return ProgressResult(
        completed=complete_roots,
        total=len(forest),
        is_complete=complete_roots == len(forest),
    )


def tile_progress(tile: Tile) -> ProgressResult:
    return evaluate(tile.goal_tree)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def goal_status(node: GoalTreeNode) -> str:
    """Map a node's reported progress to "complete" / "in_progress" / "not_started"."""
    progress = getattr(node, "progress", None)
    if progress is None:
        return "not_started"
    if progress.is_complete:
        return "complete"
    if progress.completed_count > 0:
        return "in_progress"
    return "not_started"


def goal_progress_text(goal: Goal) -> str:
    """current/target, e.g. "3/5". Falls back to "0/1"."""
    if goal.progress is None or goal.target_value is None:
        return "0/1"
    return f"{goal.progress.completed_count}/{goal.target_value}"


def goal_display_text(goal: Goal) -> str:
    if goal.goal_type is GoalType.item and goal.item_trigger is not None:
        base = goal.item_trigger.base_name or goal.description
        variant = goal.item_trigger.exact_variant
        if variant:
            return f"{base} ({variant})"
        return base
    return goal.description


def _node_view(node: GoalTreeNode, path: frozenset[int]) -> GoalNodeView:
    progress = evaluate_node(node)
    if isinstance(node, Goal):
        return GoalNodeView(
            kind="goal",
            label=goal_display_text(node),
            status=goal_status(node),
            progress_text=goal_progress_text(node),
            progress=progress,
        )
    if isinstance(node, GoalGroup):
        inner = path | {id(node)}
        children = [_node_view(c, inner) for c in node.children if id(c) not in inner]
        return GoalNodeView(
            kind="group",
            label=node.name or "Group",
            status=goal_status(node),
            operator=node.logical_operator,
            progress=progress,
            children=children,
        )
    return GoalNodeView(kind="unknown", label=getattr(node, "type", None) or "", progress=progress)


def tile_tree_view(tile: Tile) -> TileTreeView:
    """Display tree for one tile: labels, statuses and per-node progress."""
    return TileTreeView(
        tile_id=tile.id,
        title=tile.title,
        approved=tile.is_approved,
        progress=tile_progress(tile),
        nodes=[_node_view(root, frozenset()) for root in tile.goal_tree],
    )
