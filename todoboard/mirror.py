"""
Render mirror: the surface-side copy of the board.

The mirror only ever holds a *copy*. It is replaced wholesale by every
"data" snapshot and is never consulted as the source of truth. User
intents are turned into protocol messages and posted back to the core;
drags are applied to the copy immediately so the surface does not wait
for the round trip, and the next snapshot corrects it if the core
disagrees.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from .protocol import (
    AddCard,
    AddColumn,
    DeleteCard,
    DeleteColumn,
    Message,
    MoveCard,
    MoveColumn,
    RenameCard,
    RenameColumn,
    Update,
    to_wire,
)
from .reorder import (
    CardBox,
    DragSession,
    apply_column_move,
    move_card_message,
    move_column_message,
    stacked_boxes,
)
from .schema import Board, ValidationError

logger = logging.getLogger(__name__)


class RenderMirror:
    """Eventually consistent copy of the canonical board."""

    def __init__(self, post: Callable[[Dict[str, Any]], None]):
        self.post = post
        self.board: Optional[Board] = None
        self.revision = 0  # number of snapshots received

    # ── Core -> surface ─────────────────────────────────

    def receive(self, message: Dict[str, Any]) -> bool:
        """Replace the copy with a full snapshot. Non-data messages are ignored."""
        if not isinstance(message, dict) or message.get("type") != "data":
            return False
        try:
            board = Board.from_dict(message.get("data"))
        except ValidationError as e:
            logger.warning(f"Discarding malformed snapshot: {e}")
            return False
        self.board = board
        self.revision += 1
        return True

    def on_data(self, message: Dict[str, Any]) -> None:
        """Event bridge callback for the "data" event."""
        self.receive(message)

    def snapshot(self) -> Optional[Dict[str, Any]]:
        return self.board.to_dict() if self.board is not None else None

    # ── Plain intents ───────────────────────────────────

    def add_column(self, title: Optional[str] = None) -> None:
        self._send(AddColumn(title=title))

    def add_card(self, column_id: str, title: Optional[str] = None) -> None:
        self._send(AddCard(column_id=column_id, title=title))

    def rename_column(self, column_id: str, new_title: str) -> None:
        self._send(RenameColumn(column_id=column_id, new_title=new_title))

    def rename_card(self, column_id: str, card_id: str, new_title: str) -> None:
        self._send(RenameCard(column_id=column_id, card_id=card_id, new_title=new_title))

    def delete_column(self, column_id: str) -> None:
        self._send(DeleteColumn(column_id=column_id))

    def delete_card(self, column_id: str, card_id: str) -> None:
        self._send(DeleteCard(column_id=column_id, card_id=card_id))

    def commit(self) -> None:
        """Send the whole local copy as a bulk update."""
        if self.board is None:
            return
        self._send(Update(board=self.board.copy()))

    # ── Drag and drop ───────────────────────────────────

    def start_card_drag(self, column_id: str, card_id: str) -> DragSession:
        self._require_board().find_card(column_id, card_id)
        return DragSession.for_card(column_id, card_id)

    def start_column_drag(self, column_id: str) -> DragSession:
        self._require_board().find_column(column_id)
        return DragSession.for_column(column_id)

    def drop_card(self, session: DragSession, target_column_id: str, drop_y: float,
                  boxes: Optional[Iterable[CardBox]] = None) -> Optional[MoveCard]:
        """Finish a card drag over ``target_column_id``.

        Without measured boxes the target's cards are assumed to be laid
        out with stacked_boxes(). Returns the posted message, or None when
        the drop no longer matches the copy.
        """
        board = self._require_board()
        try:
            target = board.find_column(target_column_id)
        except ValidationError as e:
            session.finish()
            logger.debug(f"Drop on vanished column: {e}")
            return None
        if boxes is None:
            boxes = stacked_boxes([c.id for c in target.cards])
        message = move_card_message(session, target_column_id, drop_y, boxes)
        try:
            board.move_card(message.from_column_id, message.to_column_id,
                            message.card_id, message.to_index)
        except ValidationError as e:
            logger.debug(f"Stale card drop: {e}")
            return None
        self._send(message)
        return message

    def drop_column(self, session: DragSession, target_column_id: str) -> Optional[MoveColumn]:
        board = self._require_board()
        message = move_column_message(session, target_column_id)
        if message.from_id == message.to_id:
            return None
        try:
            apply_column_move(board, message.from_id, message.to_id)
        except ValidationError as e:
            logger.debug(f"Stale column drop: {e}")
            return None
        self._send(message)
        return message

    # ── Helpers ─────────────────────────────────────────

    def _require_board(self) -> Board:
        if self.board is None:
            raise ValidationError("no snapshot received yet")
        return self.board

    def _send(self, message: Message) -> None:
        self.post(to_wire(message))
