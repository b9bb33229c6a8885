# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Deterministic in-process transport for tests and offline consumers."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Union

import httpx

from .headers import normalize_headers
from .tls import ConnectionConfig, PeerCertificate
from .transport import Transport, TransportRequest, TransportResponse


@dataclass
class ScriptedResponse:
    """A canned response; `fail_after_chunks` raises mid-stream once the chunks are sent."""

    status_code: int = 200
    body: bytes | str = b""
    headers: dict[str, str] = field(default_factory=dict)
    reason_phrase: str | None = None
    chunk_size: int = 0
    delay: float = 0.0
    fail_after_chunks: Exception | None = None

    def chunks(self) -> list[bytes]:
        raw = self.body.encode("utf-8") if isinstance(self.body, str) else bytes(self.body)
        if not raw:
            return []
        if self.chunk_size <= 0:
            return [raw]
        return [raw[i : i + self.chunk_size] for i in range(0, len(raw), self.chunk_size)]


@dataclass(frozen=True)
class OpenFailure:
    """Raised synchronously from `open()`, before any connection attempt."""

    error: Exception


ScriptEntry = Union[ScriptedResponse, Exception, OpenFailure]


@dataclass
class ScriptedAttempt:
    request: TransportRequest
    connection: ConnectionConfig
    started_at: float


class ScriptedTransport(Transport):
    """
    Replays a script of responses/exceptions, one entry per attempt.

    The last entry repeats once the script is exhausted. When a peer certificate is
    configured, an installed identity check runs for https URLs the way a real
    handshake would, and a rejection surfaces as httpx.ConnectError.
    """

    def __init__(
        self,
        script: Sequence[ScriptEntry] | Callable[[TransportRequest], ScriptEntry],
        *,
        peer_certificate: PeerCertificate | None = None,
    ):
        if not callable(script) and not script:
            raise ValueError("ScriptedTransport needs at least one script entry")
        self._script = script
        self.peer_certificate = peer_certificate
        self.attempts: list[ScriptedAttempt] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.attempts)

    def _next_entry(self, request: TransportRequest) -> ScriptEntry:
        if callable(self._script):
            return self._script(request)
        index = min(len(self.attempts) - 1, len(self._script) - 1)
        return self._script[index]

    def open(self, request: TransportRequest, connection: ConnectionConfig) -> AbstractAsyncContextManager[TransportResponse]:
        self.attempts.append(ScriptedAttempt(request=request, connection=connection, started_at=time.monotonic()))
        entry = self._next_entry(request)
        if isinstance(entry, OpenFailure):
            raise entry.error
        return self._exchange(request, connection, entry)

    @asynccontextmanager
    async def _exchange(
        self,
        request: TransportRequest,
        connection: ConnectionConfig,
        entry: ScriptedResponse | Exception,
    ) -> AsyncIterator[TransportResponse]:
        self._handshake(request, connection)
        if isinstance(entry, Exception):
            raise entry
        if request.timeout is not None and entry.delay > request.timeout:
            await asyncio.sleep(request.timeout)
            raise httpx.ReadTimeout("Timed out waiting for response")
        if entry.delay:
            await asyncio.sleep(entry.delay)
        yield TransportResponse(
            status_code=entry.status_code,
            headers=normalize_headers(entry.headers),
            chunks=self._iter_chunks(entry),
            reason_phrase=entry.reason_phrase,
            url=request.url,
        )

    def _handshake(self, request: TransportRequest, connection: ConnectionConfig) -> None:
        if connection.identity_check is None or self.peer_certificate is None:
            return
        if not request.url.startswith("https://"):
            return
        hostname = httpx.URL(request.url).host
        reason = connection.identity_check(hostname, self.peer_certificate)
        if reason:
            raise httpx.ConnectError(reason)

    async def _iter_chunks(self, entry: ScriptedResponse) -> AsyncIterator[bytes]:
        for chunk in entry.chunks():
            await asyncio.sleep(0)
            yield chunk
        if entry.fail_after_chunks is not None:
            raise entry.fail_after_chunks

    async def aclose(self) -> None:
        self.closed = True


__all__ = ["OpenFailure", "ScriptEntry", "ScriptedAttempt", "ScriptedResponse", "ScriptedTransport"]
