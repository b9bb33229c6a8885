# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Public HTTP front-ends. Every verb returns an (error, response) tuple and never raises."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..config import HttpSettings, load_http_settings
from ..errors import RequestValidationError
from ..log import LoggerLike, get_logger, log_event
from .executor import RequestExecutor
from .models import Body, HttpMethod, HttpProtocol, HttpResponse, RequestOptions, RequestSpec, ResultTuple, Target
from .result import to_result
from .transport import Transport
from .url import resolve_protocol_target, resolve_url_target

Options = RequestOptions | Mapping[str, Any]


class _BaseHttpService:
    def __init__(
        self,
        logger: LoggerLike | None = None,
        *,
        settings: HttpSettings | None = None,
        transport: Transport | None = None,
        executor: RequestExecutor | None = None,
    ):
        self.logger = get_logger(logger)
        self.settings = settings or load_http_settings()
        self.executor = executor or RequestExecutor(transport, settings=self.settings, logger=self.logger)

    async def get(self, options: Options, host_fingerprint: str | None = None) -> ResultTuple:
        return await to_result(self._request(HttpMethod.GET, options, host_fingerprint, None))

    async def post(self, options: Options, host_fingerprint: str | None = None, body: Body | None = None) -> ResultTuple:
        return await to_result(self._request(HttpMethod.POST, options, host_fingerprint, body))

    async def put(self, options: Options, host_fingerprint: str | None = None, body: Body | None = None) -> ResultTuple:
        return await to_result(self._request(HttpMethod.PUT, options, host_fingerprint, body))

    async def delete(self, options: Options, host_fingerprint: str | None = None, body: Body | None = None) -> ResultTuple:
        return await to_result(self._request(HttpMethod.DELETE, options, host_fingerprint, body))

    async def _request(
        self,
        method: HttpMethod,
        options: Options,
        host_fingerprint: str | None,
        body: Body | None,
    ) -> HttpResponse:
        request_options = RequestOptions.coerce(options)
        try:
            target = self._resolve_target(request_options)
        except RequestValidationError as exc:
            log_event(self.logger, logging.ERROR, str(exc), host=request_options.host or request_options.hostname)
            raise
        spec = RequestSpec.from_options(
            request_options,
            target=target,
            method=method,
            body=body,
            settings=self.settings,
        )
        return await self.executor.run(spec, host_fingerprint)

    def _resolve_target(self, options: RequestOptions) -> Target:
        raise NotImplementedError

    async def aclose(self) -> None:
        await self.executor.transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()


class HttpClientService(_BaseHttpService):
    """URL-based client: ``options.host`` must be a full URL such as ``https://api.example.com``."""

    def _resolve_target(self, options: RequestOptions) -> Target:
        return resolve_url_target(options.host, options.port)


class HttpService(_BaseHttpService):
    """Client bound to one protocol; ``options.hostname`` (or ``host``) is a bare hostname."""

    def __init__(
        self,
        protocol: HttpProtocol | str,
        logger: LoggerLike | None = None,
        *,
        settings: HttpSettings | None = None,
        transport: Transport | None = None,
        executor: RequestExecutor | None = None,
    ):
        super().__init__(logger, settings=settings, transport=transport, executor=executor)
        self.protocol = HttpProtocol(getattr(protocol, "value", protocol))

    def _resolve_target(self, options: RequestOptions) -> Target:
        return resolve_protocol_target(self.protocol, options.hostname or options.host, options.port)


def create_http_client(
    logger: LoggerLike | None = None,
    *,
    settings: HttpSettings | None = None,
    transport: Transport | None = None,
) -> HttpClientService:
    """Factory for the default httpx-backed URL client."""
    return HttpClientService(logger, settings=settings, transport=transport)


__all__ = ["HttpClientService", "HttpService", "create_http_client"]
