# todoboard — message protocol (UI -> core, core -> render)
#
# Every message from the rendering surface is a tagged JSON object and is
# parsed into one of the dataclasses below before it reaches the reducer.
#
# RULES:
#   - "type" MUST be from the closed MessageType set
#   - required fields are checked here; id resolution happens in the reducer
#   - core -> render is always a full snapshot: {"type": "data", "data": Board}

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .schema import Board, ValidationError


class MessageType:
    """All valid UI message types. Nothing else is accepted."""

    UPDATE         = "update"
    ADD_COLUMN     = "add-column"
    ADD_CARD       = "add-card"
    RENAME_COLUMN  = "rename-column"
    RENAME_CARD    = "rename-card"
    DELETE_COLUMN  = "delete-column"
    DELETE_CARD    = "delete-card"
    MOVE_COLUMN    = "move-column"
    MOVE_CARD      = "move-card"

    _ALL = None  # populated on first use

    @classmethod
    def all_types(cls) -> set:
        if cls._ALL is None:
            cls._ALL = {
                v for k, v in vars(cls).items()
                if isinstance(v, str) and not k.startswith("_")
            }
        return cls._ALL

    @classmethod
    def is_valid(cls, message_type: str) -> bool:
        return message_type in cls.all_types()


# ═══════════════════════════════════════════════════════════════
# MESSAGES
# ═══════════════════════════════════════════════════════════════

@dataclass
class Update:
    board: Board


@dataclass
class AddColumn:
    title: Optional[str] = None        # pre-answered prompt


@dataclass
class AddCard:
    column_id: str
    title: Optional[str] = None


@dataclass
class RenameColumn:
    column_id: str
    new_title: str


@dataclass
class RenameCard:
    column_id: str
    card_id: str
    new_title: str


@dataclass
class DeleteColumn:
    column_id: str


@dataclass
class DeleteCard:
    column_id: str
    card_id: str


@dataclass
class MoveColumn:
    from_id: str
    to_id: str


@dataclass
class MoveCard:
    from_column_id: str
    to_column_id: str
    card_id: str
    to_index: Optional[int] = None     # None = append


Message = Union[Update, AddColumn, AddCard, RenameColumn, RenameCard,
                DeleteColumn, DeleteCard, MoveColumn, MoveCard]

MESSAGE_CLASSES = (Update, AddColumn, AddCard, RenameColumn, RenameCard,
                   DeleteColumn, DeleteCard, MoveColumn, MoveCard)


def _field(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or value == "":
        raise ValidationError(f"{raw.get('type')}: missing required field '{key}'")
    return value


def _optional_str(raw: Dict[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    return value if isinstance(value, str) else None


def parse_message(raw: Any) -> Message:
    """Turn a decoded UI message into a typed message. Raises ValidationError."""
    if not isinstance(raw, dict):
        raise ValidationError("message must be an object")
    msg_type = raw.get("type")
    if not isinstance(msg_type, str) or not MessageType.is_valid(msg_type):
        raise ValidationError(f"unknown message type: {msg_type!r}")

    if msg_type == MessageType.UPDATE:
        return Update(board=Board.from_dict(raw.get("data")))
    if msg_type == MessageType.ADD_COLUMN:
        return AddColumn(title=_optional_str(raw, "title"))
    if msg_type == MessageType.ADD_CARD:
        return AddCard(column_id=_field(raw, "columnId"), title=_optional_str(raw, "title"))
    if msg_type == MessageType.RENAME_COLUMN:
        new_title = raw.get("newTitle")
        if not isinstance(new_title, str):
            raise ValidationError("rename-column: missing required field 'newTitle'")
        return RenameColumn(column_id=_field(raw, "columnId"), new_title=new_title)
    if msg_type == MessageType.RENAME_CARD:
        new_title = raw.get("newTitle")
        if not isinstance(new_title, str):
            raise ValidationError("rename-card: missing required field 'newTitle'")
        return RenameCard(column_id=_field(raw, "columnId"), card_id=_field(raw, "cardId"),
                          new_title=new_title)
    if msg_type == MessageType.DELETE_COLUMN:
        return DeleteColumn(column_id=_field(raw, "columnId"))
    if msg_type == MessageType.DELETE_CARD:
        return DeleteCard(column_id=_field(raw, "columnId"), card_id=_field(raw, "cardId"))
    if msg_type == MessageType.MOVE_COLUMN:
        return MoveColumn(from_id=_field(raw, "fromId"), to_id=_field(raw, "toId"))

    # MOVE_CARD
    to_index = raw.get("toIndex")
    if to_index is not None and (isinstance(to_index, bool) or not isinstance(to_index, int)):
        raise ValidationError("move-card: 'toIndex' must be an integer")
    from_column = raw.get("fromColumnId") or raw.get("columnId")
    if not isinstance(from_column, str) or not from_column:
        raise ValidationError("move-card: missing required field 'fromColumnId'")
    return MoveCard(
        from_column_id=from_column,
        to_column_id=_field(raw, "toColumnId"),
        card_id=_field(raw, "cardId"),
        to_index=to_index,
    )


def to_wire(message: Message) -> Dict[str, Any]:
    """Encode a typed message back into its JSON object form."""
    if isinstance(message, Update):
        return {"type": MessageType.UPDATE, "data": message.board.to_dict()}
    if isinstance(message, AddColumn):
        out = {"type": MessageType.ADD_COLUMN}
        if message.title is not None:
            out["title"] = message.title
        return out
    if isinstance(message, AddCard):
        out = {"type": MessageType.ADD_CARD, "columnId": message.column_id}
        if message.title is not None:
            out["title"] = message.title
        return out
    if isinstance(message, RenameColumn):
        return {"type": MessageType.RENAME_COLUMN, "columnId": message.column_id,
                "newTitle": message.new_title}
    if isinstance(message, RenameCard):
        return {"type": MessageType.RENAME_CARD, "columnId": message.column_id,
                "cardId": message.card_id, "newTitle": message.new_title}
    if isinstance(message, DeleteColumn):
        return {"type": MessageType.DELETE_COLUMN, "columnId": message.column_id}
    if isinstance(message, DeleteCard):
        return {"type": MessageType.DELETE_CARD, "columnId": message.column_id,
                "cardId": message.card_id}
    if isinstance(message, MoveColumn):
        return {"type": MessageType.MOVE_COLUMN, "fromId": message.from_id, "toId": message.to_id}
    if isinstance(message, MoveCard):
        out = {"type": MessageType.MOVE_CARD, "fromColumnId": message.from_column_id,
               "toColumnId": message.to_column_id, "cardId": message.card_id}
        if message.to_index is not None:
            out["toIndex"] = message.to_index
        return out
    raise ValidationError(f"cannot encode {type(message).__name__}")


def data_message(board: Board) -> Dict[str, Any]:
    """Core -> render snapshot."""
    return {"type": "data", "data": board.to_dict()}
