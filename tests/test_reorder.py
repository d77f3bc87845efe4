"""Tests for the reorder engine: drop index, drag sessions, column moves."""
import pytest

from todoboard.protocol import MoveCard, MoveColumn
from todoboard.reorder import (
    CardBox,
    DragSession,
    apply_column_move,
    card_drop_index,
    move_card_message,
    move_column_message,
    stacked_boxes,
)
from todoboard.schema import Board, Column, NotFound, ValidationError


def _boxes(*ids):
    # 40px cards with 10px gaps: centers at 20, 70, 120, ...
    return stacked_boxes(list(ids), height=40, gap=10)


class TestCardDropIndex:

    def test_drop_above_first_card(self):
        assert card_drop_index(5, _boxes("a", "b", "c")) == 0

    def test_drop_between_cards(self):
        assert card_drop_index(45, _boxes("a", "b", "c")) == 1
        assert card_drop_index(95, _boxes("a", "b", "c")) == 2

    def test_drop_below_last_card_appends(self):
        assert card_drop_index(500, _boxes("a", "b", "c")) == 3

    def test_empty_column(self):
        assert card_drop_index(10, []) == 0

    def test_dragged_card_is_never_the_anchor(self):
        # dropping on the upper half of the dragged card itself
        assert card_drop_index(10, _boxes("a", "b", "c"), dragged_id="a") == 1

    def test_index_counts_dragged_card_slot(self):
        # drag "a" below "b": anchor is "c" at full-list index 2
        assert card_drop_index(95, _boxes("a", "b", "c"), dragged_id="a") == 2

    def test_center_uses_height(self):
        box = CardBox(card_id="x", top=100, height=50)
        assert box.center == 125


class TestDragSession:

    def test_card_drag_produces_move_message(self):
        session = DragSession.for_card("todo", "c1")
        session.over("done")
        msg = move_card_message(session, "done", 45, _boxes("d1", "d2"))
        assert msg == MoveCard(from_column_id="todo", to_column_id="done", card_id="c1", to_index=1)
        assert session.finished

    def test_finished_session_cannot_be_reused(self):
        session = DragSession.for_card("todo", "c1")
        move_card_message(session, "done", 0, [])
        with pytest.raises(ValidationError):
            move_card_message(session, "done", 0, [])
        with pytest.raises(ValidationError):
            session.over("todo")

    def test_leave_clears_hover(self):
        session = DragSession.for_column("a")
        session.over("b")
        session.leave()
        assert session.over_column_id is None

    def test_kind_mismatch_rejected(self):
        with pytest.raises(ValidationError):
            move_card_message(DragSession.for_column("a"), "b", 0, [])
        with pytest.raises(ValidationError):
            move_column_message(DragSession.for_card("a", "c1"), "b")

    def test_column_drag_produces_move_message(self):
        msg = move_column_message(DragSession.for_column("a"), "c")
        assert msg == MoveColumn(from_id="a", to_id="c")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Column moves
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _columns(board):
    return [c.id for c in board.columns]


@pytest.fixture
def four():
    return Board(columns=[Column(id=x, title=x) for x in "abcd"])


def test_column_moves_right_into_target_slot(four):
    apply_column_move(four, "a", "c")
    assert _columns(four) == ["b", "c", "a", "d"]


def test_column_moves_left_into_target_slot(four):
    apply_column_move(four, "d", "b")
    assert _columns(four) == ["a", "d", "b", "c"]


def test_column_move_onto_itself_is_noop(four):
    apply_column_move(four, "b", "b")
    assert _columns(four) == ["a", "b", "c", "d"]


def test_column_move_with_stale_id(four):
    with pytest.raises(NotFound):
        apply_column_move(four, "a", "zz")
    with pytest.raises(NotFound):
        apply_column_move(four, "zz", "a")
    assert _columns(four) == ["a", "b", "c", "d"]
