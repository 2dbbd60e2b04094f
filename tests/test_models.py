"""Tests for the board / goal-tree contract."""

import pytest
from pydantic import ValidationError

from app.tracker.models import (
    Board,
    Goal,
    GoalGroup,
    GoalType,
    LogicalOperator,
    ProgressResult,
    SubmissionStatus,
    Tile,
    TriggerContext,
    UnknownNode,
)
from tests.conftest import board_payload, make_goal, make_tile


class TestBoardParsing:
    def test_camel_case_payload(self):
        board = Board.model_validate(board_payload())
        assert board.id == "b-1"
        assert board.event_id == "e-1"
        assert len(board.tiles) == 2

    def test_tree_variants(self):
        board = Board.model_validate(board_payload())
        root = board.tiles[0].goal_tree[0]
        assert isinstance(root, GoalGroup)
        assert root.logical_operator is LogicalOperator.OR
        assert root.min_required_goals == 2
        assert all(isinstance(c, Goal) for c in root.children)

    def test_item_goal_fields(self):
        board = Board.model_validate(board_payload())
        helm = board.tiles[0].goal_tree[0].children[1]
        assert helm.goal_type is GoalType.item
        assert helm.item_trigger.item_id == 4716
        assert helm.item_trigger.exact_variant == "Undamaged"
        assert helm.trigger_key == 4716

    def test_generic_goal_has_no_trigger_key(self):
        board = Board.model_validate(board_payload())
        kc = board.tiles[0].goal_tree[0].children[2]
        assert kc.goal_type is GoalType.generic
        assert kc.trigger_key is None

    def test_submission_status(self):
        board = Board.model_validate(board_payload())
        assert board.tiles[0].submission is None
        assert board.tiles[1].submission.status is SubmissionStatus.accepted
        assert board.tiles[1].is_approved
        assert not board.tiles[0].is_approved

    def test_get_tile(self):
        board = Board.model_validate(board_payload())
        assert board.get_tile("t-2").title == "Done already"
        assert board.get_tile("nope") is None

    def test_null_collections(self):
        board = Board.model_validate({"id": "b", "tiles": [{"id": "t", "goalTree": None}]})
        assert board.tiles[0].goal_tree == ()
        assert Board.model_validate({"tiles": None}).tiles == ()

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            Tile.model_validate({"id": "t", "submission": {"status": "approved-ish"}})


class TestNodeShapes:
    def test_unknown_node_type_does_not_fail_board(self):
        tile = Tile.model_validate(
            {"id": "t", "goalTree": [{"type": "widget", "foo": 1}, {"type": "goal"}]}
        )
        assert isinstance(tile.goal_tree[0], UnknownNode)
        assert isinstance(tile.goal_tree[1], Goal)

    def test_missing_type_is_unknown(self):
        tile = Tile.model_validate({"id": "t", "goalTree": [{"description": "???"}]})
        assert isinstance(tile.goal_tree[0], UnknownNode)

    def test_group_never_exposes_item_trigger(self):
        group = GoalGroup.model_validate(
            {"type": "group", "logicalOperator": "AND", "itemGoal": {"itemId": 1}, "targetValue": 3}
        )
        assert not hasattr(group, "item_trigger")
        assert not hasattr(group, "target_value")

    def test_goal_never_exposes_children(self):
        goal = Goal.model_validate(
            {"type": "goal", "children": [{"type": "goal"}], "logicalOperator": "OR"}
        )
        assert not hasattr(goal, "children")
        assert not hasattr(goal, "logical_operator")

    def test_operator_normalized(self):
        assert GoalGroup.model_validate({"logicalOperator": "or"}).logical_operator is LogicalOperator.OR
        assert GoalGroup.model_validate({"logicalOperator": "and"}).logical_operator is LogicalOperator.AND

    @pytest.mark.parametrize("payload", [{}, {"logicalOperator": None}, {"logicalOperator": "XOR"}])
    def test_missing_or_unknown_operator_is_or(self, payload):
        assert GoalGroup.model_validate(payload).logical_operator is LogicalOperator.OR

    def test_goal_type_normalized(self):
        assert Goal.model_validate({"goalType": "ITEM"}).goal_type is GoalType.item
        assert Goal.model_validate({"goalType": "skill"}).goal_type is GoalType.generic
        assert Goal.model_validate({"goalType": None}).goal_type is GoalType.generic

    def test_item_goal_without_item_id(self):
        goal = Goal.model_validate({"goalType": "item", "itemGoal": {"baseName": "Mystery"}})
        assert goal.trigger_key is None

    def test_models_are_frozen(self):
        goal = make_goal(True)
        with pytest.raises(ValidationError):
            goal.description = "changed"
        tile = make_tile("t", goal)
        with pytest.raises(ValidationError):
            tile.goal_tree = ()

    def test_snake_case_construction(self):
        goal = Goal(goal_type="item", item_trigger={"item_id": 995}, description="Coins")
        assert goal.trigger_key == 995


class TestProgressResult:
    def test_percentage_derived(self):
        assert ProgressResult(completed=1, total=2, is_complete=False).percentage == 50.0

    def test_percentage_zero_total(self):
        assert ProgressResult().percentage == 0.0

    def test_percentage_serialized(self):
        data = ProgressResult(completed=2, total=2, is_complete=True).model_dump()
        assert data == {"completed": 2, "total": 2, "is_complete": True, "percentage": 100.0}


class TestTriggerContext:
    def test_evidence_hidden(self):
        ctx = TriggerContext(source_name="Zulrah", evidence=b"\x89PNG")
        assert "evidence" not in ctx.model_dump()
        assert "PNG" not in repr(ctx)
        assert ctx.evidence == b"\x89PNG"

    def test_defaults(self):
        ctx = TriggerContext()
        assert ctx.source_type == "Unknown"
        assert ctx.npc_id is None
