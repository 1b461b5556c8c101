"""Immutable per-attempt generation request and option validation."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Union

from pick_harness.types import ROLES, Message

JsonMode = Union[Literal[False], Literal["any"], Literal["object"]]

# (full_text, chunk) -> stop?
StopPredicate = Callable[[str, str], bool]

# -1 asks the service not to limit generation length
UNBOUNDED_PREDICT = -1


class ConfigurationError(ValueError):
    """Invalid combination of chat options.  Raised before any model call."""


@dataclass(frozen=True)
class DecodingOptions:
    """Sampling parameters passed through to the chat service."""

    temperature: float | None = None
    top_k: int | None = None
    top_p: float | None = None
    repeat_penalty: float | None = None
    repeat_last_n: int | None = None
    stop: tuple[str, ...] | None = None
    num_predict: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Service ``options`` dict; unset values are omitted."""
        payload: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            payload[f.name] = list(value) if f.name == "stop" else value
        payload.setdefault("num_predict", UNBOUNDED_PREDICT)
        return payload


@dataclass(frozen=True)
class GenerationRequest:
    """Everything one attempt sends to the chat service.

    A retry never mutates a request; ``with_repair_turn`` derives the next
    one.
    """

    model: str
    messages: tuple[Message, ...]
    options: DecodingOptions = field(default_factory=DecodingOptions)
    grammar: str | None = None
    json_mode: JsonMode = False
    max_length: int | None = None
    retries_remaining: int = 0

    def with_repair_turn(self, raw_output: str, diagnostic: str) -> GenerationRequest:
        """Replay the failed output and the diagnostic, spending one retry."""
        if self.retries_remaining <= 0:
            raise ValueError("no retries remaining")
        return dataclasses.replace(
            self,
            messages=self.messages + (
                Message(role="assistant", content=raw_output),
                Message(role="user", content=diagnostic),
            ),
            retries_remaining=self.retries_remaining - 1,
        )

    def messages_payload(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.messages]


def validate_options(
    json_mode: Any,
    grammar: str | None,
    should_stop: StopPredicate | None,
    retries: int,
) -> None:
    """Reject option combinations the engine cannot honour."""
    if json_mode not in (False, "any", "object"):
        raise ConfigurationError(
            f"is_json must be False, 'any' or 'object', got {json_mode!r}"
        )
    if json_mode == "object" and grammar:
        raise ConfigurationError("Cannot specify both is_json='object' and grammar")
    if json_mode == "any" and not grammar:
        raise ConfigurationError("Must specify grammar when is_json is 'any'")
    if json_mode and should_stop is not None:
        raise ConfigurationError(
            "Cannot specify should_stop when is_json is set, "
            "as the streaming is stopped automatically when the JSON is completed."
        )
    if retries < 0:
        raise ConfigurationError(f"retries must be >= 0, got {retries}")


def build_messages(raw: Iterable[Message | dict[str, Any]]) -> tuple[Message, ...]:
    """Normalize a conversation and check its roles."""
    messages = tuple(Message.coerce(m) for m in raw)
    for m in messages:
        if m.role not in ROLES:
            raise ConfigurationError(f"Unknown message role: {m.role!r}")
    return messages
