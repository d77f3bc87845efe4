"""
Reorder engine: drag gestures -> explicit move messages.

Two move classes:
  - column move: source column dropped on a target column; takes the
    target's slot, no geometry involved
  - card move: drop point measured against the cards of the target column;
    the insertion index is the position of the first card (other than the
    dragged one) whose vertical center lies below the drop point, or the
    end of the list

The computed index always refers to the target column's *current* card
list (the dragged card included when it lives there), which is what
Board.move_card expects.

A DragSession carries the gesture state from drag-start to drop and is
discarded afterwards, so nothing about a finished drag survives into the
next render.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .protocol import MoveCard, MoveColumn
from .schema import Board, ValidationError


@dataclass(frozen=True)
class CardBox:
    """Rendered vertical extent of one card, in surface coordinates (y grows down)."""
    card_id: str
    top: float
    height: float

    @property
    def center(self) -> float:
        return self.top + self.height / 2


@dataclass
class DragSession:
    """State of a single drag gesture.

    kind is "card" or "column". For card drags ``card_id`` and
    ``source_column_id`` are set; for column drags only ``source_column_id``.
    """
    kind: str
    source_column_id: str
    card_id: Optional[str] = None
    over_column_id: Optional[str] = None
    finished: bool = field(default=False)

    @classmethod
    def for_card(cls, column_id: str, card_id: str) -> "DragSession":
        return cls(kind="card", source_column_id=column_id, card_id=card_id)

    @classmethod
    def for_column(cls, column_id: str) -> "DragSession":
        return cls(kind="column", source_column_id=column_id)

    def over(self, column_id: str) -> None:
        """Record the column currently under the pointer."""
        self._check_open()
        self.over_column_id = column_id

    def leave(self) -> None:
        self.over_column_id = None

    def finish(self) -> None:
        self._check_open()
        self.finished = True

    def _check_open(self) -> None:
        if self.finished:
            raise ValidationError("drag session already finished")


def card_drop_index(drop_y: float, boxes: Iterable[CardBox], dragged_id: Optional[str] = None) -> int:
    """Insertion index for a card dropped at ``drop_y``.

    ``boxes`` are all cards of the target column in list order. The dragged
    card keeps its slot in the count but is never chosen as the anchor.
    """
    boxes = list(boxes)
    for i, box in enumerate(boxes):
        if box.card_id == dragged_id:
            continue
        if box.center > drop_y:
            return i
    return len(boxes)


def move_card_message(session: DragSession, target_column_id: str, drop_y: float,
                      boxes: Iterable[CardBox]) -> MoveCard:
    """Close a card drag and pack the move."""
    if session.kind != "card" or session.card_id is None:
        raise ValidationError("not a card drag")
    session.finish()
    index = card_drop_index(drop_y, boxes, dragged_id=session.card_id)
    return MoveCard(
        from_column_id=session.source_column_id,
        to_column_id=target_column_id,
        card_id=session.card_id,
        to_index=index,
    )


def move_column_message(session: DragSession, target_column_id: str) -> MoveColumn:
    """Close a column drag and pack the move."""
    if session.kind != "column":
        raise ValidationError("not a column drag")
    session.finish()
    return MoveColumn(from_id=session.source_column_id, to_id=target_column_id)


def apply_column_move(board: Board, from_id: str, to_id: str) -> None:
    """Put column ``from_id`` into ``to_id``'s current slot. Same id is a no-op."""
    board.find_column(from_id)
    board.find_column(to_id)
    if from_id == to_id:
        return
    board.move_column(from_id, board.column_index(to_id))


def stacked_boxes(card_ids: List[str], height: float = 40.0, gap: float = 6.0,
                  top: float = 0.0) -> List[CardBox]:
    """Lay cards out top to bottom with a fixed height. Used by headless surfaces."""
    boxes = []
    y = top
    for card_id in card_ids:
        boxes.append(CardBox(card_id=card_id, top=y, height=height))
        y += height + gap
    return boxes
