# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
resilienthttp package entrypoint.

An asynchronous outbound HTTP/HTTPS client built on httpx: bounded constant-delay
retries, body decoding by content type, typed timeout/abort errors and optional
TLS certificate fingerprint pinning. Every public call returns an
``(error, response)`` tuple instead of raising.
"""

from .config import HttpSettings, load_http_settings
from .errors import (
    DecodeError,
    ErrorCategory,
    HttpServiceError,
    HttpStatusError,
    RequestTimeoutError,
    RequestValidationError,
    ServiceUnavailableError,
    TransportError,
)
from .http import (
    HttpClientService,
    HttpMethod,
    HttpProtocol,
    HttpResponse,
    HttpService,
    HttpxTransport,
    RequestExecutor,
    RequestOptions,
    RequestSpec,
    ScriptedTransport,
    Transport,
    create_http_client,
)
from .log import setup_logging
from .version import __version__

__all__ = [
    "DecodeError",
    "ErrorCategory",
    "HttpClientService",
    "HttpMethod",
    "HttpProtocol",
    "HttpResponse",
    "HttpService",
    "HttpServiceError",
    "HttpSettings",
    "HttpStatusError",
    "HttpxTransport",
    "RequestExecutor",
    "RequestOptions",
    "RequestSpec",
    "RequestTimeoutError",
    "RequestValidationError",
    "ScriptedTransport",
    "ServiceUnavailableError",
    "Transport",
    "TransportError",
    "create_http_client",
    "load_http_settings",
    "setup_logging",
    "__version__",
]
