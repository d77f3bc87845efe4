"""
Title prompts for add-column / add-card.

The dispatcher awaits ``PromptBroker.ask()``; the prompt stays open until
the surface answers or cancels it, for as long as that takes. Answers may
arrive from any thread (HTTP handlers), so resolution is marshalled back
onto the loop that owns the future.
"""
import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def make_prompt_id() -> str:
    """Sortable unique prompt id (ms timestamp + random hex)."""
    return f"prompt-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


@dataclass
class PendingPrompt:
    prompt_id: str
    label: str
    future: "asyncio.Future"
    loop: asyncio.AbstractEventLoop
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.prompt_id, "label": self.label, "created_at": self.created_at}


class PromptBroker:
    """Open prompts keyed by id."""

    def __init__(self):
        self._pending: Dict[str, PendingPrompt] = {}
        self._lock = threading.Lock()

    async def ask(self, label: str) -> Optional[str]:
        """Suspend until answered. Returns None when cancelled."""
        loop = asyncio.get_running_loop()
        prompt = PendingPrompt(
            prompt_id=make_prompt_id(),
            label=label,
            future=loop.create_future(),
            loop=loop,
        )
        with self._lock:
            self._pending[prompt.prompt_id] = prompt
        logger.info(f"Prompt {prompt.prompt_id} opened: {label}")
        try:
            return await prompt.future
        finally:
            with self._lock:
                self._pending.pop(prompt.prompt_id, None)

    def pending(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [p.to_dict() for p in self._pending.values()]

    def answer(self, prompt_id: str, value: Optional[str]) -> bool:
        """Resolve a prompt. Returns False if it is unknown or already closed."""
        with self._lock:
            prompt = self._pending.get(prompt_id)
        if prompt is None:
            return False
        if prompt.loop.is_closed():
            logger.debug(f"Prompt {prompt_id} outlived its loop")
            return False
        try:
            prompt.loop.call_soon_threadsafe(_resolve, prompt.future, value)
        except RuntimeError:
            # loop closed between the check and the call
            return False
        return True

    def cancel(self, prompt_id: str) -> bool:
        return self.answer(prompt_id, None)

    def cancel_all(self) -> None:
        with self._lock:
            ids = list(self._pending)
        for prompt_id in ids:
            self.cancel(prompt_id)


def _resolve(future: "asyncio.Future", value: Optional[str]) -> None:
    if not future.done():
        future.set_result(value)
