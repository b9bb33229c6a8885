# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction and the httpx-backed default implementation."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from ..config import HttpSettings, load_http_settings
from .headers import normalize_headers
from .models import Headers
from .tls import ConnectionConfig, create_ssl_context


@dataclass(frozen=True)
class TransportRequest:
    """One attempt as handed to a transport: fully resolved URL, final headers and body bytes."""

    method: str
    url: str
    headers: Headers = field(default_factory=dict)
    content: bytes | None = None
    timeout: float | None = None


@dataclass
class TransportResponse:
    """Response head plus the body as an async stream of chunks."""

    status_code: int
    headers: Headers
    chunks: AsyncIterator[bytes]
    reason_phrase: str | None = None
    url: str | None = None


class Transport(Protocol):
    """
    Minimal protocol for issuing one HTTP exchange.

    `open` is synchronous: anything it raises happened before the connection was
    attempted. Exceptions raised while entering the returned context or reading
    chunks are transport events (error, timeout or abort).
    """

    def open(self, request: TransportRequest, connection: ConnectionConfig) -> AbstractAsyncContextManager[TransportResponse]: ...

    async def aclose(self) -> None:  # pragma: no cover - optional for adapters
        ...


class HttpxTransport(Transport):
    """httpx.AsyncClient transport; a pinned connection gets its own short-lived client."""

    def __init__(
        self,
        settings: HttpSettings | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        mounts: dict[str, httpx.AsyncBaseTransport] | None = None,
    ):
        self.settings = settings or load_http_settings()
        self._mounts = mounts
        self._client = client or self._build_client(create_ssl_context(ConnectionConfig(verify=self.settings.verify_ssl)))

    def _build_client(self, verify) -> httpx.AsyncClient:  # noqa: ANN001
        return httpx.AsyncClient(follow_redirects=False, timeout=None, verify=verify, mounts=self._mounts)

    def open(self, request: TransportRequest, connection: ConnectionConfig) -> AbstractAsyncContextManager[TransportResponse]:
        # request construction does not depend on the TLS settings
        httpx_request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.content,
            timeout=httpx.Timeout(request.timeout),
        )
        if connection.identity_check is None and connection.verify == self.settings.verify_ssl:
            return self._exchange(self._client, httpx_request, False)
        return self._exchange(self._build_client(create_ssl_context(connection)), httpx_request, True)

    @asynccontextmanager
    async def _exchange(self, client: httpx.AsyncClient, request: httpx.Request, owned: bool) -> AsyncIterator[TransportResponse]:
        try:
            response = await client.send(request, stream=True)
            try:
                yield TransportResponse(
                    status_code=response.status_code,
                    headers=normalize_headers(response.headers),
                    chunks=response.aiter_bytes(),
                    reason_phrase=response.reason_phrase or None,
                    url=str(response.url),
                )
            finally:
                await response.aclose()
        finally:
            if owned:
                await client.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["HttpxTransport", "Transport", "TransportRequest", "TransportResponse"]
