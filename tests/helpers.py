"""Test helpers shared across test modules (importable via ``pythonpath``)."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Coroutine, Optional

import httpx

from ociauth.auth.base import CredentialProvider
from ociauth.models import EMPTY_CREDENTIAL, Credential


def run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run *coro* to completion on a fresh event loop."""
    return asyncio.run(coro)


class RecordingProvider(CredentialProvider):
    """Provider returning a fixed result and recording every host it sees.

    Args:
        name: Diagnostic name.
        result: Credential to return. ``None`` means no credential.
        error: Exception to raise instead of returning.
        delay: Seconds to sleep before answering.
    """

    def __init__(
        self,
        name: str,
        result: Optional[Credential] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.result = result if result is not None else EMPTY_CREDENTIAL
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def credential(self, host: str) -> Credential:
        self.calls.append(host)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class StreamedBody(httpx.AsyncByteStream):
    """Async response body delivered in chunks, like a real network read."""

    def __init__(self, data: bytes, chunk_size: int = 8) -> None:
        self._data = data
        self._chunk_size = chunk_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for start in range(0, len(self._data), self._chunk_size):
            yield self._data[start : start + self._chunk_size]


def streamed_json(status_code: int, data: Any) -> httpx.Response:
    """Build a JSON response whose body has not been read yet."""
    return httpx.Response(
        status_code,
        headers={"Content-Type": "application/json"},
        stream=StreamedBody(json.dumps(data).encode("utf-8")),
    )
