"""
Document store: owns the canonical board and its JSON text.

The store is the only writer of the backing document. It parses text
coming from disk (initial load, external edits) and serializes the board
after every committed mutation.
"""
import json
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .schema import Board, Column, ParseError, PersistFailure, ValidationError

logger = logging.getLogger(__name__)

RECENT_WRITES = 16

DEFAULT_COLUMNS: List[Dict[str, str]] = [
    {"id": "ideas", "title": "Ideas"},
    {"id": "in-progress", "title": "In Progress"},
    {"id": "done", "title": "Done"},
]


def default_board(columns: Optional[List[Dict[str, str]]] = None) -> Board:
    """Empty three-column template used when the document does not exist yet."""
    spec = columns if columns is not None else DEFAULT_COLUMNS
    return Board(columns=[Column(id=c["id"], title=c["title"]) for c in spec])


def serialize(board: Board, indent: int = 2) -> str:
    """Deterministic JSON text: fixed key order, fixed indentation."""
    return json.dumps(board.to_dict(), indent=indent, ensure_ascii=False)


def parse(raw_text: str) -> Union[Board, ParseError]:
    """Decode document text. Returns a ParseError instead of raising."""
    try:
        data = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as e:
        return ParseError(f"invalid JSON: {e}")
    try:
        return Board.from_dict(data)
    except ValidationError as e:
        return ParseError(str(e))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# File collaborator
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FileDocument:
    """Existence check plus a read/write pair for the backing file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def write(self, text: str) -> None:
        """Atomic write: write to temp, then rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            f.write(text)
        tmp_file.replace(self.path)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Store
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class PersistResult:
    """Outcome of apply_and_persist()."""
    ok: bool
    board: Board                       # canonical board after the call
    text: Optional[str] = None         # serialized text that was written
    error: Optional[PersistFailure] = None


class DocumentStore:
    """Canonical board plus its serialized form."""

    def __init__(self, document: FileDocument, indent: int = 2,
                 default_columns: Optional[List[Dict[str, str]]] = None):
        self.document = document
        self.indent = indent
        self.default_columns = default_columns
        self.board = Board()
        self.last_text: Optional[str] = None
        # texts this store wrote; change notifications for them may arrive late
        self.recent_writes: deque = deque(maxlen=RECENT_WRITES)

    def open(self, create_if_missing: bool = True) -> Union[Board, ParseError]:
        """Load the backing document, writing the default template first if absent."""
        if not self.document.exists():
            if not create_if_missing:
                return ParseError(f"{self.document.path} does not exist")
            text = serialize(default_board(self.default_columns), self.indent)
            try:
                self.document.write(text)
            except OSError as e:
                logger.error(f"Cannot create {self.document.path}: {e}")
                return ParseError(f"cannot create document: {e}")
            logger.info(f"Created {self.document.path} from the default template")
        try:
            raw = self.document.read()
        except OSError as e:
            return ParseError(f"cannot read document: {e}")
        return self.load(raw)

    def load(self, raw_text: str) -> Union[Board, ParseError]:
        """Replace the canonical board with parsed text.

        On malformed text the previous board is kept and the ParseError
        is returned to the caller.
        """
        result = parse(raw_text)
        if isinstance(result, ParseError):
            logger.info(f"Ignoring unparseable document: {result}")
            return result
        self.board = result
        self.last_text = raw_text
        return result.copy()

    def is_own_write(self, raw_text: str) -> bool:
        """True if the text is the current document text, or one of our
        earlier writes that the file on disk has already moved past."""
        if self.last_text is not None and raw_text == self.last_text:
            return True
        if raw_text not in self.recent_writes:
            return False
        try:
            on_disk = self.document.read()
        except OSError as e:
            logger.debug(f"Cannot re-read {self.document.path}: {e}")
            return True
        # same text still on disk means someone put it back by hand
        return on_disk != raw_text

    def snapshot(self) -> Board:
        return self.board.copy()

    def apply_and_persist(self, mutation: Callable[[Board], Board]) -> PersistResult:
        """Compute the next board from the current one and write it.

        ``mutation`` receives a copy and must return the new board. Any
        BoardError it raises propagates with the store untouched. A failed
        write keeps the previous board canonical; nothing is retried here.

        An existing document that has never loaded cleanly is not written:
        the in-memory board is empty and would replace the user's content.
        """
        if self.last_text is None and self.document.exists():
            failure = PersistFailure(
                f"{self.document.path} has not been loaded; refusing to overwrite it"
            )
            logger.error(str(failure))
            return PersistResult(ok=False, board=self.board.copy(), error=failure)
        new_board = mutation(self.board.copy())
        text = serialize(new_board, self.indent)
        try:
            self.document.write(text)
        except OSError as e:
            failure = PersistFailure(f"write to {self.document.path} failed: {e}")
            logger.error(str(failure))
            return PersistResult(ok=False, board=self.board.copy(), error=failure)
        self.board = new_board
        self.last_text = text
        self.recent_writes.append(text)
        return PersistResult(ok=True, board=new_board.copy(), text=text)
