"""Chat engine: validated streaming generation with self-correcting retries.

    request → session → extract → Ok
                           ↓ Err (retryable)
               request + [assistant: raw output, user: diagnostic] → session …

Each failed attempt replays the model's own output together with the
diagnostic, so the model can correct itself in context.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from pick_harness.events.bus import EventBus
from pick_harness.types import ChatEvent, Err, EventType, FailureKind, Message, Result

from .client import ChatService, ModelServiceError
from .extractor import Transform, extract
from .request import (
    DecodingOptions,
    GenerationRequest,
    JsonMode,
    StopPredicate,
    build_messages,
    validate_options,
)
from .session import StreamingSession

_logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3"
DEFAULT_RETRIES = 3

LENGTH_EXCEEDED_MESSAGE = "Response length exceeded"


class ChatEngine:
    """Runs chat requests against a ``ChatService`` until a value validates.

    Parameters
    ----------
    service:
        Streaming model backend, usually an ``AsyncOllamaClient``.
    default_model:
        Model used when ``chat()`` is not given one.
    default_retries:
        Retry budget used when ``chat()`` is not given one.
    events:
        Optional event bus receiving chunk / retry / outcome events.
    """

    def __init__(
        self,
        service: ChatService,
        default_model: str = DEFAULT_MODEL,
        default_retries: int = DEFAULT_RETRIES,
        events: EventBus | None = None,
    ) -> None:
        self._service = service
        self._default_model = default_model
        self._default_retries = default_retries
        self._events = events

    async def chat(
        self,
        messages: Iterable[Message | dict[str, Any]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        top_k: int | None = None,
        top_p: float | None = None,
        repeat_penalty: float | None = None,
        repeat_last_n: int | None = None,
        stop: Sequence[str] | None = None,
        num_predict: int | None = None,
        is_json: JsonMode = False,
        grammar: str | None = None,
        max_length: int | None = None,
        retries: int | None = None,
        transform: Transform | None = None,
        should_stop: StopPredicate | None = None,
    ) -> Result[Any]:
        """Generate until *transform* accepts the output or retries run out.

        Raises ``ConfigurationError`` for invalid option combinations,
        before contacting the service.  Every other outcome is returned as
        ``Ok`` or ``Err``.
        """
        if retries is None:
            retries = self._default_retries
        validate_options(is_json, grammar, should_stop, retries)

        request = GenerationRequest(
            model=model or self._default_model,
            messages=build_messages(messages),
            options=DecodingOptions(
                temperature=temperature,
                top_k=top_k,
                top_p=top_p,
                repeat_penalty=repeat_penalty,
                repeat_last_n=repeat_last_n,
                stop=tuple(stop) if stop is not None else None,
                num_predict=num_predict,
            ),
            grammar=grammar,
            json_mode=is_json,
            max_length=max_length,
            retries_remaining=retries,
        )
        return await self.run(request, transform=transform, should_stop=should_stop)

    async def run(
        self,
        request: GenerationRequest,
        transform: Transform | None = None,
        should_stop: StopPredicate | None = None,
    ) -> Result[Any]:
        """Run the retry loop for an already-built *request*."""
        current = request
        attempt = 0

        while True:
            attempt += 1
            await self._emit(EventType.CHAT_ATTEMPT, {
                "attempt": attempt,
                "retries_remaining": current.retries_remaining,
            })

            session = StreamingSession(
                self._service, current, stop_predicate=should_stop,
                events=self._events,
            )
            try:
                outcome = await session.run()
            except ModelServiceError as e:
                _logger.warning("Chat service failed: %s", e)
                return await self._fail(Err(
                    error=str(e), kind=FailureKind.SERVICE, attempts=attempt,
                ))

            if outcome.length_exceeded:
                return await self._fail(Err(
                    error=LENGTH_EXCEEDED_MESSAGE,
                    kind=FailureKind.LENGTH_EXCEEDED,
                    attempts=attempt,
                ))

            result = extract(outcome.text, current.json_mode, transform)
            if result.ok:
                await self._emit(EventType.CHAT_DONE, {"attempts": attempt})
                return result

            if current.retries_remaining <= 0:
                _logger.debug("retries exhausted")
                return await self._fail(Err(
                    error=result.error,
                    kind=FailureKind.RETRIES_EXHAUSTED,
                    attempts=attempt,
                ))

            if outcome.interrupted:
                _logger.info("attempt %d ended by a transport error", attempt)
            _logger.debug("error received, retrying: %s", result.error)
            await self._emit(EventType.CHAT_RETRY, {
                "attempt": attempt,
                "kind": result.kind.value,
                "error": result.error,
                "interrupted": outcome.interrupted,
            })
            current = current.with_repair_turn(outcome.text, result.error)

    async def _fail(self, err: Err) -> Err:
        await self._emit(EventType.CHAT_FAILED, {
            "kind": err.kind.value,
            "error": err.error,
            "attempts": err.attempts,
        })
        return err

    async def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        if self._events is not None:
            await self._events.emit(ChatEvent(type=event_type, data=data))
