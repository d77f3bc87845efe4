"""
Board host: wires store, dispatcher, prompts, watcher and mirror together.

The dispatcher runs on its own asyncio loop in a background thread.
Everything else (watchdog observer, HTTP handlers) hands work to it
through the thread-safe submit methods, so there is exactly one ordered
processing point per document.
"""
import asyncio
import logging
import threading
from typing import Any, Dict, Optional

from . import events
from .config import Config
from .dispatcher import MutationDispatcher
from .events import SyncEventBridge
from .mirror import RenderMirror
from .prompts import PromptBroker
from .schema import ParseError
from .store import DocumentStore, FileDocument
from .watcher import DocumentWatcher

logger = logging.getLogger(__name__)


class BoardHost:
    """One document, one dispatcher loop."""

    def __init__(self, cfg: Config):
        self.cfg = cfg
        self.store = DocumentStore(
            FileDocument(cfg.document_path),
            indent=cfg.indent,
            default_columns=cfg.default_columns,
        )
        self.bridge = SyncEventBridge()
        self.prompts = PromptBroker()
        self.dispatcher = MutationDispatcher(self.store, prompt=self.prompts.ask, bridge=self.bridge)

        # latest snapshot as the surface sees it; served over HTTP
        self.mirror = RenderMirror(post=self.submit)
        self.bridge.subscribe(events.DATA, self.mirror.on_data)
        self.bridge.subscribe(events.PERSIST_FAILED, self._on_persist_failed)

        self.watcher = DocumentWatcher(cfg.document_path, self._on_file_change, cfg.debounce_ms)
        self._watching = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self.last_error: Optional[str] = None

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def start(self, watch: bool = True) -> None:
        result = self.store.open(create_if_missing=self.cfg.create_if_missing)
        if isinstance(result, ParseError):
            self.last_error = str(result)
            logger.warning(f"Starting with an empty board: {result}")
        else:
            logger.info(
                f"Loaded {self.cfg.document_path}: "
                f"{len(result.columns)} columns, {result.card_count()} cards"
            )

        self._thread = threading.Thread(target=self._run_loop, name="todoboard-dispatch", daemon=True)
        self._thread.start()
        self._ready.wait()

        if watch:
            self.watcher.start()
            self._watching = True

    def stop(self, timeout: float = 5.0) -> None:
        if self._watching:
            self.watcher.stop()
            self._watching = False
        self.prompts.cancel_all()
        if self._thread is not None and self._thread.is_alive():
            self.dispatcher.stop_threadsafe()
            self._thread.join(timeout)
        self._thread = None

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            loop.run_until_complete(self._main())
        finally:
            loop.close()

    async def _main(self) -> None:
        worker = asyncio.get_running_loop().create_task(self.dispatcher.run())
        await asyncio.sleep(0)  # let run() bind its loop before anyone submits
        self.dispatcher.publish()
        self._ready.set()
        await worker

    def flush(self, timeout: float = 5.0) -> None:
        """Block until every queued item (and open prompt) has been processed."""
        if self._loop is None:
            return
        future = asyncio.run_coroutine_threadsafe(self.dispatcher.drain(), self._loop)
        future.result(timeout)

    # ──────────────────────────────────────────
    # Inputs
    # ──────────────────────────────────────────

    def submit(self, raw: Any) -> None:
        """Queue a UI message from any thread."""
        self.dispatcher.submit_threadsafe(raw)

    def snapshot(self) -> Optional[Dict[str, Any]]:
        return self.mirror.snapshot()

    @property
    def revision(self) -> int:
        return self.mirror.revision

    def _on_file_change(self, text: str) -> None:
        self.dispatcher.notify_external_change_threadsafe(text)

    def _on_persist_failed(self, error) -> None:
        self.last_error = str(error)
