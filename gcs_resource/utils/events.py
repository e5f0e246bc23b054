"""Progress events raised while publishing.

Listeners are display hooks: a failing listener is logged and the publish
carries on.
"""
from typing import Callable, Dict, List
import asyncio
import logging

logger = logging.getLogger(__name__)

SCAN_COMPLETE = "scan_complete"
FILE_START = "file_start"
FILE_COMPLETE = "file_complete"
FILE_FAIL = "file_fail"

PUBLISH_EVENTS = (SCAN_COMPLETE, FILE_START, FILE_COMPLETE, FILE_FAIL)


class EventEmitter:
    """Dispatches publish events to sync or async listeners, in subscription order."""

    def __init__(self, events=PUBLISH_EVENTS):
        self._listeners: Dict[str, List[Callable]] = {name: [] for name in events}

    def _listeners_for(self, event_name: str) -> List[Callable]:
        try:
            return self._listeners[event_name]
        except KeyError:
            raise ValueError(
                f"unknown event {event_name!r}; expected one of {', '.join(self._listeners)}"
            ) from None

    def on(self, event_name: str, callback: Callable) -> None:
        listeners = self._listeners_for(event_name)
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable) -> None:
        listeners = self._listeners_for(event_name)
        if callback in listeners:
            listeners.remove(callback)

    async def emit(self, event_name: str, *args) -> None:
        for callback in list(self._listeners_for(event_name)):
            try:
                outcome = callback(*args)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"{event_name} listener {getattr(callback, '__name__', callback)!r} failed: {e}")
