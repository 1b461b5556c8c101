"""Async pub/sub bus carrying chat progress to whoever renders it."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from pick_harness.types import ChatEvent, EventType

_logger = logging.getLogger(__name__)

# Subscribe with this key to receive every event
WILDCARD = "*"

Handler = Callable[[ChatEvent], Any]


class EventBus:
    """Fan chat events out to sync or async handlers.

    A failing handler is logged and never breaks the chat that emitted the
    event.  The last ``max_history`` events are kept for inspection.
    """

    def __init__(self, max_history: int = 500) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._history: list[ChatEvent] = []
        self._max_history = max_history

    def subscribe(self, event_type: EventType | str, handler: Handler) -> None:
        self._handlers.setdefault(self._key(event_type), []).append(handler)

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        handlers = self._handlers.get(self._key(event_type), [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: ChatEvent) -> None:
        self._history.append(event)
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]

        handlers = list(self._handlers.get(event.type.value, []))
        handlers.extend(self._handlers.get(WILDCARD, []))
        if not handlers:
            return
        await asyncio.gather(*(self._call(h, event) for h in handlers))

    @property
    def history(self) -> list[ChatEvent]:
        return list(self._history)

    def events_of(self, event_type: EventType) -> list[ChatEvent]:
        """History filtered to one event type."""
        return [e for e in self._history if e.type is event_type]

    @staticmethod
    def _key(event_type: EventType | str) -> str:
        if isinstance(event_type, EventType):
            return event_type.value
        return str(event_type)

    @staticmethod
    async def _call(handler: Handler, event: ChatEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _logger.exception(
                "Event handler %s failed on %s",
                getattr(handler, "__name__", handler), event.type.value,
            )
