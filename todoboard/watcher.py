"""
Change notifications for the backing document.

Watches the document's parent directory with watchdog and forwards the
document's new text whenever it is modified, created, or replaced by an
atomic rename. Writes that land within the debounce window of the
previous one are coalesced.
"""
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class DocumentChangeHandler(FileSystemEventHandler):
    """Filters filesystem events down to the one document we care about."""

    def __init__(self, document_path: str, on_change: Callable[[str], None],
                 debounce_ms: int = 200):
        self.document_path = Path(document_path).resolve()
        self.on_change = on_change
        self.debounce_ms = debounce_ms
        self._last_seen: Optional[float] = None
        self._last_text: Optional[str] = None

    def on_any_event(self, fs_event: FileSystemEvent):
        if fs_event.is_directory or fs_event.event_type not in ("modified", "created", "moved"):
            return
        # atomic writes show up as a move onto the document path
        target = getattr(fs_event, "dest_path", "") or fs_event.src_path
        if not self._is_document(target):
            return
        self._forward()

    def _is_document(self, path) -> bool:
        if not path:
            return False
        if isinstance(path, bytes):
            path = path.decode("utf-8", errors="replace")
        return Path(path).resolve() == self.document_path

    def _forward(self):
        try:
            text = self.document_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.debug(f"Cannot read {self.document_path}: {e}")
            return
        now = time.monotonic()
        # identical text inside the window is the same write reported twice
        if (text == self._last_text and self._last_seen is not None
                and (now - self._last_seen) < (self.debounce_ms / 1000)):
            return
        self._last_seen = now
        self._last_text = text
        self.on_change(text)


class DocumentWatcher:
    """Owns the watchdog observer for one document."""

    def __init__(self, document_path: str, on_change: Callable[[str], None],
                 debounce_ms: int = 200):
        self.handler = DocumentChangeHandler(document_path, on_change, debounce_ms)
        self.observer: Optional[Observer] = None

    def start(self) -> None:
        watch_dir = self.handler.document_path.parent
        watch_dir.mkdir(parents=True, exist_ok=True)
        self.observer = Observer()
        self.observer.schedule(self.handler, str(watch_dir), recursive=False)
        self.observer.start()
        logger.info(f"Watching {self.handler.document_path}")

    def stop(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
