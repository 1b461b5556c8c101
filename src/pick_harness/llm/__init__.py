"""Chat engine and model client for pick-harness."""

from pick_harness.llm.client import (
    AsyncOllamaClient,
    ChatService,
    ChatStream,
    ModelServiceError,
)
from pick_harness.llm.engine import ChatEngine
from pick_harness.llm.extractor import extract
from pick_harness.llm.request import (
    ConfigurationError,
    DecodingOptions,
    GenerationRequest,
)
from pick_harness.llm.session import StreamingSession, json_stop_predicate

__all__ = [
    "AsyncOllamaClient",
    "ChatEngine",
    "ChatService",
    "ChatStream",
    "ConfigurationError",
    "DecodingOptions",
    "GenerationRequest",
    "ModelServiceError",
    "StreamingSession",
    "extract",
    "json_stop_predicate",
]
