"""
Mutation dispatcher: the single ordered processing point.

UI messages and external document changes go through one asyncio queue
and are applied strictly in arrival order by one consumer. The board is
transformed by ``reduce()``, a pure (Board, Message) -> Board function,
and the result is handed to the document store for persistence.

Flow per UI message:
    parse -> (prompt for title) -> reduce -> persist -> snapshot to render

add-column / add-card without a title open a prompt in a separate task.
The queue keeps moving while the prompt is open; the answer comes back as
a new queue item and is reduced against the board current at that time.
"""
import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from . import events
from .events import SyncEventBridge
from .protocol import (
    MESSAGE_CLASSES,
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
    data_message,
    parse_message,
)
from .reorder import apply_column_move
from .schema import Board, Card, Column, ParseError, PromptCancelled, ValidationError, make_id
from .store import DocumentStore

logger = logging.getLogger(__name__)

Prompt = Callable[[str], Awaitable[Optional[str]]]


def clean_title(value: Any) -> Optional[str]:
    """Stripped title, or None if blank / not a string."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Reducer
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def reduce(board: Board, message: Message) -> Board:
    """Apply one message to a copy of ``board`` and return the copy.

    Raises ValidationError (NotFound for stale ids) without side effects.
    """
    board = board.copy()

    if isinstance(message, Update):
        return message.board.copy()

    if isinstance(message, AddColumn):
        title = clean_title(message.title)
        if title is None:
            raise ValidationError("add-column: title required")
        board.insert_column(Column(id=make_id(title, "column", board.ids()), title=title))

    elif isinstance(message, AddCard):
        title = clean_title(message.title)
        if title is None:
            raise ValidationError("add-card: title required")
        board.find_column(message.column_id)
        card = Card(id=make_id(title, "card", board.ids()), title=title)
        board.insert_card(message.column_id, card)

    elif isinstance(message, RenameColumn):
        col = board.find_column(message.column_id)
        title = clean_title(message.new_title)
        if title is None or title == col.title:
            raise ValidationError(f"rename-column: {message.new_title!r} is not a new title")
        col.title = title

    elif isinstance(message, RenameCard):
        card = board.find_card(message.column_id, message.card_id)
        title = clean_title(message.new_title)
        if title is None or title == card.title:
            raise ValidationError(f"rename-card: {message.new_title!r} is not a new title")
        card.title = title

    elif isinstance(message, DeleteColumn):
        board.remove_column(message.column_id)

    elif isinstance(message, DeleteCard):
        board.remove_card(message.column_id, message.card_id)

    elif isinstance(message, MoveColumn):
        apply_column_move(board, message.from_id, message.to_id)

    elif isinstance(message, MoveCard):
        board.move_card(message.from_column_id, message.to_column_id,
                        message.card_id, message.to_index)

    else:
        raise ValidationError(f"unsupported message {type(message).__name__}")

    return board


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Queue items
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class _Inbound:
    raw: Any


@dataclass
class _External:
    text: str


@dataclass
class _Resolved:
    message: Message


class _Stop:
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Dispatcher
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class MutationDispatcher:
    """Validates, applies and persists board mutations one at a time."""

    def __init__(self, store: DocumentStore, prompt: Optional[Prompt] = None,
                 bridge: Optional[SyncEventBridge] = None):
        self.store = store
        self.prompt = prompt
        self.bridge = bridge or SyncEventBridge()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._prompt_tasks: set = set()

    # ──────────────────────────────────────────
    # Submission
    # ──────────────────────────────────────────

    def submit(self, raw: Any) -> None:
        """Queue a UI message (dict or typed message). Call from the loop thread."""
        self._queue.put_nowait(_Inbound(raw))

    def notify_external_change(self, raw_text: str) -> None:
        """Queue new document text seen on disk. Call from the loop thread."""
        self._queue.put_nowait(_External(raw_text))

    def submit_threadsafe(self, raw: Any) -> None:
        self._call_in_loop(_Inbound(raw))

    def notify_external_change_threadsafe(self, raw_text: str) -> None:
        self._call_in_loop(_External(raw_text))

    def _call_in_loop(self, item: Any) -> None:
        if self._loop is None:
            raise RuntimeError("dispatcher is not running")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    # ──────────────────────────────────────────
    # Consumer loop
    # ──────────────────────────────────────────

    async def run(self) -> None:
        """Drain the queue until stop() is called."""
        self._loop = asyncio.get_running_loop()
        while True:
            item = await self._queue.get()
            try:
                if isinstance(item, _Stop):
                    break
                self._process(item)
            except Exception as e:
                logger.exception(f"Unexpected error while processing {item!r}: {e}")
            finally:
                self._queue.task_done()
        for task in list(self._prompt_tasks):
            task.cancel()

    def stop(self) -> None:
        self._queue.put_nowait(_Stop())

    def stop_threadsafe(self) -> None:
        self._call_in_loop(_Stop())

    async def drain(self, wait_for_prompts: bool = True) -> None:
        """Wait until the queue is empty and, by default, no prompt is outstanding."""
        while True:
            await self._queue.join()
            if not wait_for_prompts or not self._prompt_tasks:
                return
            await asyncio.gather(*list(self._prompt_tasks), return_exceptions=True)

    def _process(self, item: Any) -> None:
        if isinstance(item, _Inbound):
            self.handle_message(item.raw)
        elif isinstance(item, _External):
            self.handle_external_change(item.text)
        elif isinstance(item, _Resolved):
            self._apply(item.message)

    # ──────────────────────────────────────────
    # Handlers
    # ──────────────────────────────────────────

    def publish(self) -> None:
        """Push the canonical board to the render surface."""
        self._render(self.store.snapshot())

    def handle_external_change(self, raw_text: str) -> bool:
        """Reload from document text; the disk version overwrites the mirror."""
        if self.store.is_own_write(raw_text):
            logger.debug("Ignoring change notification for our own write")
            return False
        result = self.store.load(raw_text)
        if isinstance(result, ParseError):
            self.bridge.emit(events.PARSE_FAILED, error=result)
            return False
        logger.info("Document changed externally; re-syncing surface")
        self._render(result)
        return True

    def handle_message(self, raw: Any) -> bool:
        """Validate and apply one UI message. Returns True if the board changed."""
        try:
            message = raw if isinstance(raw, MESSAGE_CLASSES) else parse_message(raw)
        except ValidationError as e:
            logger.debug(f"Dropping message: {e}")
            return False

        if isinstance(message, (AddColumn, AddCard)) and clean_title(message.title) is None:
            if isinstance(message, AddCard) and self.store.board.column_index(message.column_id) < 0:
                logger.debug(f"Dropping add-card for unknown column {message.column_id!r}")
                return False
            self._start_prompt(message)
            return False

        return self._apply(message)

    def _apply(self, message: Message) -> bool:
        current = self.store.board
        try:
            new_board = reduce(current, message)
        except ValidationError as e:
            logger.debug(f"Dropping {type(message).__name__}: {e}")
            return False
        if new_board == current:
            logger.debug(f"{type(message).__name__} left the board unchanged")
            return False

        result = self.store.apply_and_persist(lambda _board: new_board)
        if not result.ok:
            self.bridge.emit(events.PERSIST_FAILED, error=result.error)
            # surface may have applied the change optimistically; put it back
            self._render(result.board)
            return False

        self.bridge.emit(events.PERSISTED, text=result.text)
        if not isinstance(message, Update):
            self._render(result.board)
        return True

    # ──────────────────────────────────────────
    # Prompting
    # ──────────────────────────────────────────

    def _start_prompt(self, message: Message) -> None:
        if self.prompt is None:
            logger.warning(f"No prompt available; dropping {type(message).__name__}")
            return
        label = "Column title" if isinstance(message, AddColumn) else "Card title"
        task = asyncio.get_running_loop().create_task(self._await_title(message, label))
        self._prompt_tasks.add(task)
        task.add_done_callback(self._prompt_tasks.discard)

    async def _await_title(self, message: Message, label: str) -> None:
        """Prompts may return None/blank or raise PromptCancelled to decline."""
        try:
            title = clean_title(await self.prompt(label))
            if title is None:
                raise PromptCancelled(f"{label} prompt cancelled")
        except PromptCancelled as e:
            logger.info(f"{e}; nothing created")
            return
        except Exception as e:
            logger.exception(f"{label} prompt failed: {e}")
            return
        self._queue.put_nowait(_Resolved(dataclasses.replace(message, title=title)))

    def _render(self, board: Board) -> None:
        self.bridge.emit(events.DATA, message=data_message(board))
