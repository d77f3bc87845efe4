"""
Event bridge: fans core output out to the render surface and the host.

Event types:
  data            - full board snapshot for the render mirror
                    (payload: message={"type": "data", "data": {...}})
  persisted       - serialized document text after a committed mutation
                    (payload: text=str)
  persist_failed  - write collaborator failed (payload: error=PersistFailure)
  parse_failed    - document text could not be parsed (payload: error=ParseError)
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

DATA = "data"
PERSISTED = "persisted"
PERSIST_FAILED = "persist_failed"
PARSE_FAILED = "parse_failed"


class SyncEventBridge:
    """Routes engine events to subscribed callbacks."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> callbacks

    def subscribe(self, event_type: str, callback: Callable) -> Callable[[], None]:
        """Register a callback for an event type. Returns an unsubscribe function."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

        def unsubscribe():
            callbacks = self.subscribers.get(event_type, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers. A failing callback does not stop the rest."""
        for callback in list(self.subscribers.get(event_type, [])):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.warning(f"Error in {event_type} callback: {e}")
