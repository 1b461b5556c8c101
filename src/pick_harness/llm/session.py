"""Streaming session: drives one model invocation to completion or abort."""

from __future__ import annotations

import json
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

import httpx

from pick_harness.events.bus import EventBus
from pick_harness.types import ChatEvent, EventType

from .client import ChatService
from .request import GenerationRequest, StopPredicate

_logger = logging.getLogger(__name__)


def json_stop_predicate(full_text: str, chunk: str) -> bool:
    """Stop once a whitespace-only chunk follows a complete JSON value.

    Under constrained decoding the model often keeps emitting whitespace
    after the value is complete.
    """
    if chunk.strip() != "":
        return False
    try:
        json.loads(full_text)
    except json.JSONDecodeError:
        return False
    return True


def never_stop(full_text: str, chunk: str) -> bool:
    return False


@dataclass
class SessionOutcome:
    """What one streaming attempt produced."""

    text: str = ""
    chunk_count: int = 0
    stopped_early: bool = False
    length_exceeded: bool = False
    interrupted: bool = False


class StreamingSession:
    """Accumulates one attempt's output.

    Stops on natural end of stream, when *stop_predicate* fires, or when the
    text grows past ``request.max_length``.  The latter two abort the
    stream.  Each session owns its accumulator; never reuse one across
    attempts.
    """

    def __init__(
        self,
        service: ChatService,
        request: GenerationRequest,
        stop_predicate: StopPredicate | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._service = service
        self._request = request
        if stop_predicate is None:
            stop_predicate = json_stop_predicate if request.json_mode else never_stop
        self._should_stop = stop_predicate
        self._events = events

    async def run(self) -> SessionOutcome:
        outcome = SessionOutcome()
        max_length = self._request.max_length

        _logger.debug("generating response")
        async with self._service.open_stream(self._request) as stream:
            try:
                async with aclosing(stream.chunks()) as chunks:
                    async for chunk in chunks:
                        outcome.text += chunk
                        outcome.chunk_count += 1
                        await self._emit(EventType.CHAT_CHUNK, {"chunk": chunk})

                        if self._should_stop(outcome.text, chunk):
                            outcome.stopped_early = True
                            await stream.abort()
                            await self._emit(EventType.CHAT_ABORTED, {"reason": "stop"})
                            break

                        if max_length and len(outcome.text) > max_length:
                            outcome.length_exceeded = True
                            await stream.abort()
                            await self._emit(EventType.CHAT_ABORTED, {"reason": "length"})
                            break
            except httpx.TransportError as e:
                # Keep what arrived; the extractor decides if it is usable.
                _logger.warning("Stream interrupted after %d chunks: %s",
                                outcome.chunk_count, e)
                outcome.interrupted = True

        return outcome

    async def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        if self._events is not None:
            await self._events.emit(ChatEvent(type=event_type, data=data))
