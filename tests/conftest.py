"""Shared fakes for chat-engine tests."""

from __future__ import annotations

from typing import Any

import pytest

from pick_harness.llm.request import GenerationRequest


class FakeStream:
    """Scripted ``ChatStream``: yields fixed chunks, records pulls and aborts."""

    def __init__(self, script: Any) -> None:
        self._script = script
        self.pulled = 0
        self.aborted = False
        self.closed = False

    async def __aenter__(self) -> FakeStream:
        if isinstance(self._script, BaseException):
            raise self._script
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True

    async def chunks(self):
        for item in self._script:
            if self.aborted:
                return
            if isinstance(item, BaseException):
                raise item
            self.pulled += 1
            yield item

    async def abort(self) -> None:
        self.aborted = True


class FakeService:
    """Scripted ``ChatService``.

    Each ``open_stream`` call consumes the next script; the last script is
    repeated once the list runs out.  A script is a list of chunks (which
    may contain an exception to raise mid-stream) or an exception to raise
    when the stream is opened.
    """

    def __init__(self, *scripts: Any) -> None:
        self._scripts = list(scripts) or [[]]
        self.requests: list[GenerationRequest] = []
        self.streams: list[FakeStream] = []
        self.closed = False

    def open_stream(self, request: GenerationRequest) -> FakeStream:
        self.requests.append(request)
        idx = min(len(self.requests) - 1, len(self._scripts) - 1)
        stream = FakeStream(self._scripts[idx])
        self.streams.append(stream)
        return stream

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


@pytest.fixture
def make_service():
    """Factory for ``FakeService`` instances."""
    return FakeService
