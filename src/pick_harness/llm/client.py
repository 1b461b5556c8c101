"""Async streaming client for the Ollama native chat API.

Uses ``httpx.AsyncClient`` and exposes ``open_stream()``, which returns a
``ChatStream``: an async context manager yielding text chunks that can be
aborted mid-generation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Protocol

import httpx

from .request import GenerationRequest

_logger = logging.getLogger(__name__)

# Retry configuration for opening a stream
_MAX_RETRIES = 3
_BACKOFF_BASE = 1  # seconds -- exponential: 1, 2

_RETRY_STATUSES = (429, 500, 502, 503, 504)


class ModelServiceError(Exception):
    """The chat service could not be reached or returned an error."""


def build_payload(request: GenerationRequest) -> dict[str, Any]:
    """Build the ``/api/chat`` request body for *request*."""
    options = request.options.to_payload()
    if request.grammar:
        # Requires a grammar-aware Ollama build; ignored by stock servers.
        options["grammar"] = request.grammar
    payload: dict[str, Any] = {
        "model": request.model,
        "messages": request.messages_payload(),
        "stream": True,
        "options": options,
    }
    if request.json_mode == "object":
        payload["format"] = "json"
    return payload


class ChatStream:
    """One streaming ``/api/chat`` invocation.

    Usage::

        async with client.open_stream(request) as stream:
            async for chunk in stream.chunks():
                ...
                await stream.abort()

    After ``abort()`` the underlying response is closed and ``chunks()``
    yields nothing further.
    """

    def __init__(self, http: httpx.AsyncClient, payload: dict[str, Any]) -> None:
        self._http = http
        self._payload = payload
        self._response: httpx.Response | None = None
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    async def __aenter__(self) -> ChatStream:
        self._response = await self._open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self._close()

    async def _open(self) -> httpx.Response:
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            request = self._http.build_request("POST", "/api/chat", json=self._payload)
            try:
                resp = await self._http.send(request, stream=True)
            except httpx.TimeoutException as e:
                last_error = e
                _logger.warning(
                    "Ollama stream timeout (attempt %d/%d): %s",
                    attempt + 1, _MAX_RETRIES, e,
                )
                if attempt < _MAX_RETRIES - 1:
                    await asyncio.sleep(_BACKOFF_BASE * (2 ** attempt))
                continue
            except httpx.HTTPError as e:
                last_error = e
                _logger.warning(
                    "Ollama stream error (attempt %d/%d): %s",
                    attempt + 1, _MAX_RETRIES, e,
                )
                if attempt < _MAX_RETRIES - 1:
                    await asyncio.sleep(_BACKOFF_BASE * (2 ** attempt))
                continue

            if resp.status_code < 400:
                return resp

            body = (await resp.aread()).decode(errors="replace")
            await resp.aclose()
            if resp.status_code not in _RETRY_STATUSES:
                raise ModelServiceError(
                    f"Ollama returned {resp.status_code}: {body.strip()}"
                )
            last_error = ModelServiceError(f"HTTP {resp.status_code}")
            _logger.warning(
                "Ollama stream returned %d (attempt %d/%d), retrying...",
                resp.status_code, attempt + 1, _MAX_RETRIES,
            )
            if attempt < _MAX_RETRIES - 1:
                await asyncio.sleep(_BACKOFF_BASE * (2 ** attempt))

        raise ModelServiceError(f"exhausted retries: {last_error}")

    async def chunks(self) -> AsyncIterator[str]:
        """Yield content fragments until the service reports ``done``."""
        if self._response is None:
            raise RuntimeError("ChatStream used outside 'async with'")

        async for line in self._response.aiter_lines():
            if self._aborted:
                return
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                _logger.debug("Skipping undecodable stream line: %r", line)
                continue

            if "error" in data:
                raise ModelServiceError(str(data["error"]))

            chunk = data.get("message", {}).get("content", "")
            if data.get("done"):
                if chunk:
                    yield chunk
                return
            # Empty chunks are passed on; the JSON stop rule keys on them.
            yield chunk

    async def abort(self) -> None:
        """Stop generation: close the response so the server stops producing."""
        if self._aborted:
            return
        self._aborted = True
        _logger.debug("Aborting stream")
        await self._close()

    async def _close(self) -> None:
        if self._response is not None:
            await self._response.aclose()


class ChatService(Protocol):
    """What the chat engine needs from a model backend."""

    def open_stream(self, request: GenerationRequest) -> ChatStream:
        ...


class AsyncOllamaClient:
    """Async client for a local Ollama server."""

    def __init__(
        self,
        url: str = "http://localhost:11434",
        timeout: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # Accept OpenAI-style URLs too
        base_url = url.rstrip("/").removesuffix("/v1")
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=30, read=60),
            transport=transport,
        )

    def open_stream(self, request: GenerationRequest) -> ChatStream:
        return ChatStream(self._http, build_payload(request))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> AsyncOllamaClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
