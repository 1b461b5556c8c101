"""Shared data types for pick-harness."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar, Union

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Conversation types
# ---------------------------------------------------------------------------

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """A single chat message."""

    role: str  # system, user, assistant
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def coerce(cls, raw: Message | dict[str, Any]) -> Message:
        """Accept either a ``Message`` or a ``{"role", "content"}`` dict."""
        if isinstance(raw, Message):
            return raw
        return cls(role=raw.get("role"), content=raw.get("content", ""))


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class FailureKind(enum.Enum):
    """Why a chat call did not produce a value."""

    PARSE = "parse"                          # retryable
    VALIDATION = "validation"                # retryable
    LENGTH_EXCEEDED = "length_exceeded"      # fatal, no retry consumed
    RETRIES_EXHAUSTED = "retries_exhausted"  # terminal
    SERVICE = "service"                      # fatal, no retry consumed


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying a value."""

    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Err:
    """Failed result carrying diagnostic text.

    ``error`` is written so it can be replayed verbatim to the model.
    """

    error: str
    kind: FailureKind = FailureKind.VALIDATION
    attempts: int = 0
    ok: ClassVar[bool] = False


Result = Union[Ok[T], Err]


# ---------------------------------------------------------------------------
# Dataset types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DatasetObject:
    """An object in the room the model can pick."""

    label: str
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventType(enum.Enum):
    """Events emitted by the chat engine."""

    CHAT_ATTEMPT = "chat.attempt"
    CHAT_CHUNK = "chat.chunk"
    CHAT_ABORTED = "chat.aborted"
    CHAT_RETRY = "chat.retry"
    CHAT_DONE = "chat.done"
    CHAT_FAILED = "chat.failed"


@dataclass
class ChatEvent:
    """Event emitted via the EventBus."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
