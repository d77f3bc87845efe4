"""
Board schema: columns of cards, plus the structural operations on them.

A board is an ordered list of columns; each column holds an ordered list
of cards. Position is meaningful (priority / workflow order). Identifiers
are generated once at creation time and never change afterwards.

Every mutator checks that the ids it was given resolve *before* touching
anything, so a stale id leaves the board exactly as it was and raises
NotFound.
"""
import copy
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Exceptions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BoardError(Exception):
    """Base class for every error the sync engine produces."""
    pass


class ParseError(BoardError):
    """Document text is not a valid board. Returned by load(), not raised."""
    pass


class ValidationError(BoardError):
    """A message or board payload is missing fields or breaks an invariant."""
    pass


class NotFound(ValidationError):
    """A column or card id does not resolve in the current board."""
    pass


class PersistFailure(BoardError):
    """The write collaborator failed; the previous board stays canonical."""
    pass


class PromptCancelled(BoardError):
    """The user declined to provide a required title."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Identifiers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(title: str, fallback: str = "item") -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim dashes."""
    slug = _SLUG_RE.sub("-", title.lower()).strip("-")
    return slug[:40].rstrip("-") or fallback


def make_id(title: str, fallback: str = "item", taken: Optional[set] = None) -> str:
    """Generate an id from the title slug and a ms-precision timestamp.

    If the id is already in ``taken`` (same title in the same millisecond),
    a numeric suffix is appended until it is free.
    """
    base = f"{slugify(title, fallback)}-{int(time.time() * 1000)}"
    if not taken or base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Data model
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _require_str(data: Dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValidationError(f"{where}: '{key}' must be a string, got {type(value).__name__}")
    return value


@dataclass
class Card:
    """A single work item."""
    id: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title}

    @classmethod
    def from_dict(cls, data: Any) -> "Card":
        if not isinstance(data, dict):
            raise ValidationError("card must be an object")
        return cls(id=_require_str(data, "id", "card"), title=_require_str(data, "title", "card"))


@dataclass
class Column:
    """A titled, ordered list of cards."""
    id: str
    title: str
    cards: List[Card] = field(default_factory=list)

    def index_of(self, card_id: str) -> int:
        """Position of a card in this column, or -1."""
        for i, card in enumerate(self.cards):
            if card.id == card_id:
                return i
        return -1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "cards": [c.to_dict() for c in self.cards],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Column":
        if not isinstance(data, dict):
            raise ValidationError("column must be an object")
        col_id = _require_str(data, "id", "column")
        raw_cards = data.get("cards", [])
        if not isinstance(raw_cards, list):
            raise ValidationError(f"column {col_id}: 'cards' must be a list")
        cards = [Card.from_dict(c) for c in raw_cards]
        seen = set()
        for card in cards:
            if card.id in seen:
                raise ValidationError(f"column {col_id}: duplicate card id {card.id}")
            seen.add(card.id)
        return cls(id=col_id, title=_require_str(data, "title", "column"), cards=cards)


@dataclass
class Board:
    """Ordered columns. Column ids are unique within a board."""
    columns: List[Column] = field(default_factory=list)

    # ── Lookup ──────────────────────────────────────────

    def column_index(self, column_id: str) -> int:
        for i, col in enumerate(self.columns):
            if col.id == column_id:
                return i
        return -1

    def find_column(self, column_id: str) -> Column:
        """Return the column or raise NotFound."""
        i = self.column_index(column_id)
        if i < 0:
            raise NotFound(f"column {column_id!r} not found")
        return self.columns[i]

    def find_card(self, column_id: str, card_id: str) -> Card:
        """Return the card in the given column or raise NotFound."""
        col = self.find_column(column_id)
        i = col.index_of(card_id)
        if i < 0:
            raise NotFound(f"card {card_id!r} not found in column {column_id!r}")
        return col.cards[i]

    def locate_card(self, card_id: str) -> Tuple[Column, int]:
        """Find a card anywhere on the board; returns (column, index)."""
        for col in self.columns:
            i = col.index_of(card_id)
            if i >= 0:
                return col, i
        raise NotFound(f"card {card_id!r} not found")

    def card_count(self) -> int:
        return sum(len(col.cards) for col in self.columns)

    def ids(self) -> set:
        """Every column and card id on the board."""
        taken = set()
        for col in self.columns:
            taken.add(col.id)
            taken.update(card.id for card in col.cards)
        return taken

    # ── Structural edits ────────────────────────────────

    def insert_column(self, column: Column, at_index: Optional[int] = None) -> None:
        if self.column_index(column.id) >= 0:
            raise ValidationError(f"column id {column.id!r} already exists")
        if at_index is None:
            self.columns.append(column)
        else:
            self.columns.insert(_clamp(at_index, len(self.columns)), column)

    def remove_column(self, column_id: str) -> Column:
        i = self.column_index(column_id)
        if i < 0:
            raise NotFound(f"column {column_id!r} not found")
        return self.columns.pop(i)

    def insert_card(self, column_id: str, card: Card, at_index: Optional[int] = None) -> None:
        col = self.find_column(column_id)
        if col.index_of(card.id) >= 0:
            raise ValidationError(f"card id {card.id!r} already exists in column {column_id!r}")
        if at_index is None:
            col.cards.append(card)
        else:
            col.cards.insert(_clamp(at_index, len(col.cards)), card)

    def remove_card(self, column_id: str, card_id: str) -> Card:
        col = self.find_column(column_id)
        i = col.index_of(card_id)
        if i < 0:
            raise NotFound(f"card {card_id!r} not found in column {column_id!r}")
        return col.cards.pop(i)

    def move_card(
        self,
        from_column_id: str,
        to_column_id: str,
        card_id: str,
        to_index: Optional[int] = None,
    ) -> None:
        """Splice a card out of its column and into the destination.

        Within one column, an index past the card's old position is
        shifted down by one: the removal already moved later cards left.
        ``to_index=None`` appends.
        """
        src = self.find_column(from_column_id)
        dst = self.find_column(to_column_id)
        i = src.index_of(card_id)
        if i < 0:
            raise NotFound(f"card {card_id!r} not found in column {from_column_id!r}")
        if src is not dst and dst.index_of(card_id) >= 0:
            raise ValidationError(f"card id {card_id!r} already exists in column {to_column_id!r}")

        card = src.cards.pop(i)
        if to_index is None:
            dst.cards.append(card)
            return
        if src is dst and i < to_index:
            to_index -= 1
        dst.cards.insert(_clamp(to_index, len(dst.cards)), card)

    def move_column(self, column_id: str, to_index: int) -> None:
        i = self.column_index(column_id)
        if i < 0:
            raise NotFound(f"column {column_id!r} not found")
        col = self.columns.pop(i)
        self.columns.insert(_clamp(to_index, len(self.columns)), col)

    # ── Serialization ───────────────────────────────────

    def copy(self) -> "Board":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {"columns": [c.to_dict() for c in self.columns]}

    @classmethod
    def from_dict(cls, data: Any) -> "Board":
        """Build a board from decoded JSON. Raises ValidationError."""
        if not isinstance(data, dict):
            raise ValidationError("board must be an object")
        raw_columns = data.get("columns")
        if not isinstance(raw_columns, list):
            raise ValidationError("board: 'columns' must be a list")
        board = cls(columns=[Column.from_dict(c) for c in raw_columns])
        seen = set()
        for col in board.columns:
            if col.id in seen:
                raise ValidationError(f"duplicate column id {col.id!r}")
            seen.add(col.id)
        return board


def _clamp(index: int, upper: int) -> int:
    return max(0, min(index, upper))
