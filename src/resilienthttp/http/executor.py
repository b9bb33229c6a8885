# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request execution engine: retry loop, outcome classification and body decoding."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from ..config import HttpSettings, load_http_settings
from ..errors import (
    ABORT_MESSAGE,
    TIMEOUT_MESSAGE,
    DecodeError,
    ErrorCategory,
    HttpServiceError,
    HttpStatusError,
    RequestValidationError,
    TransportError,
    categorize_exception,
    error_category_to_reason,
    error_for_category,
)
from ..log import LoggerLike, get_logger, log_event
from .content import FORM_CONTENT_TYPE, decode_body, prepare_body
from .headers import has_header, header_value
from .models import HttpResponse, RequestSpec, ResultTuple, is_success_status
from .result import to_result
from .tls import ConnectionConfig, bind_fingerprint
from .transport import HttpxTransport, Transport, TransportRequest, TransportResponse


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass
class AttemptOutcome:
    """Result of one transport round, consumed by the retry decision."""

    kind: OutcomeKind
    response: HttpResponse | None = None
    error: HttpServiceError | None = None

    @classmethod
    def failure(cls, error: HttpServiceError) -> AttemptOutcome:
        return cls(kind=OutcomeKind.RETRYABLE if error.retryable else OutcomeKind.TERMINAL, error=error)


class RequestExecutor:
    """
    Issue one logical request with a bounded, constant-delay retry budget.

    Attempts are strictly sequential: ``max_retries + 1`` at most, separated by
    ``retry_delay`` seconds. Decode failures and open-time failures end the call
    immediately whatever budget remains.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        settings: HttpSettings | None = None,
        logger: LoggerLike | None = None,
    ):
        self.settings = settings or load_http_settings()
        self.transport = transport or HttpxTransport(self.settings)
        self.logger = get_logger(logger)

    async def execute(self, spec: RequestSpec, fingerprint: str | None = None) -> ResultTuple:
        return await to_result(self.run(spec, fingerprint))

    async def run(self, spec: RequestSpec, fingerprint: str | None = None) -> HttpResponse:
        """Execute `spec`, returning the decoded response or raising an HttpServiceError."""
        connection = self.connection_config(spec, fingerprint)
        request = self.build_transport_request(spec)

        outcome: AttemptOutcome | None = None
        attempt = 0
        for attempt in range(spec.max_retries + 1):
            if attempt:
                log_event(
                    self.logger,
                    logging.INFO,
                    "Retrying request",
                    url=request.url,
                    attempt=attempt,
                    max_retries=spec.max_retries,
                    reason=error_category_to_reason(outcome.error.category if outcome and outcome.error else None),
                )
                # a zero delay still yields to the event loop
                await asyncio.sleep(spec.retry_delay)

            outcome = await self._attempt(request, connection)
            if outcome.kind is OutcomeKind.SUCCESS:
                outcome.response.meta["retry_count"] = attempt
                return outcome.response
            if outcome.kind is OutcomeKind.TERMINAL:
                break

        error = outcome.error
        if isinstance(error, HttpStatusError):
            error.response.meta["retry_count"] = attempt
        raise error

    def connection_config(self, spec: RequestSpec, fingerprint: str | None = None) -> ConnectionConfig:
        config = ConnectionConfig(verify=self.settings.verify_ssl)
        if spec.target.secure:
            config = bind_fingerprint(config, fingerprint, logger=self.logger)
        return config

    def build_transport_request(self, spec: RequestSpec) -> TransportRequest:
        headers = dict(spec.headers)
        if not has_header(headers, "user-agent"):
            headers["User-Agent"] = self.settings.user_agent
        if isinstance(spec.body, Mapping) and not has_header(headers, "content-type"):
            headers["Content-Type"] = FORM_CONTENT_TYPE
        try:
            content = prepare_body(spec.body)
        except TypeError as exc:
            raise RequestValidationError(str(exc)) from exc
        return TransportRequest(
            method=spec.method.value,
            url=spec.url,
            headers=headers,
            content=content,
            timeout=spec.timeout,
        )

    async def _attempt(self, request: TransportRequest, connection: ConnectionConfig) -> AttemptOutcome:
        try:
            exchange = self.transport.open(request, connection)
        except Exception as exc:  # noqa: BLE001
            log_event(self.logger, logging.ERROR, "Failed to open connection", url=request.url, error=str(exc))
            error = exc if isinstance(exc, HttpServiceError) else TransportError(exc)
            return AttemptOutcome(kind=OutcomeKind.TERMINAL, error=error)

        try:
            async with exchange as response:
                body = bytearray()
                async for chunk in response.chunks:
                    body.extend(chunk)
        except Exception as exc:  # noqa: BLE001
            return AttemptOutcome.failure(self._transport_failure(request, exc))

        return self._decide(response, bytes(body))

    def _transport_failure(self, request: TransportRequest, exc: Exception) -> HttpServiceError:
        category = categorize_exception(exc)
        if category is ErrorCategory.TIMEOUT:
            log_event(self.logger, logging.ERROR, TIMEOUT_MESSAGE, url=request.url)
        elif category is ErrorCategory.ABORT:
            log_event(self.logger, logging.ERROR, ABORT_MESSAGE, url=request.url)
        else:
            log_event(self.logger, logging.ERROR, "Request failed", url=request.url, error=str(exc))
        return error_for_category(category, exc)

    def _decide(self, response: TransportResponse, body: bytes) -> AttemptOutcome:
        decoded = HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            status_message=response.reason_phrase,
            url=response.url,
        )
        content_type = header_value(response.headers, "content-type") or None

        if not body:
            log_event(self.logger, logging.INFO, "No data in response", status_code=response.status_code)

        try:
            decoded.data = decode_body(
                body,
                content_type,
                binary_types=self.settings.binary_mime_types,
                binary_prefixes=self.settings.binary_mime_prefixes,
            )
        except DecodeError as exc:
            log_event(
                self.logger,
                logging.ERROR,
                "Failed to parse data",
                status_code=response.status_code,
                content_type=content_type,
                body=body[:512].decode("utf-8", errors="replace"),
            )
            return AttemptOutcome(kind=OutcomeKind.TERMINAL, error=exc)

        if is_success_status(decoded.status_code):
            return AttemptOutcome(kind=OutcomeKind.SUCCESS, response=decoded)
        return AttemptOutcome(kind=OutcomeKind.RETRYABLE, error=HttpStatusError(decoded))


__all__ = ["AttemptOutcome", "OutcomeKind", "RequestExecutor"]
