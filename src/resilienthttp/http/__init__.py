# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .adapters import OpenFailure, ScriptedResponse, ScriptedTransport
from .client import HttpClientService, HttpService, create_http_client
from .content import ContentKind, classify_content_type, decode_body, encode_form_body
from .executor import AttemptOutcome, OutcomeKind, RequestExecutor
from .headers import header_value, normalize_headers
from .models import (
    Headers,
    HttpMethod,
    HttpProtocol,
    HttpResponse,
    RequestOptions,
    RequestSpec,
    ResultTuple,
    Target,
)
from .result import to_result
from .tls import ConnectionConfig, FingerprintVerifier, PeerCertificate, bind_fingerprint
from .transport import HttpxTransport, Transport, TransportRequest, TransportResponse
from .url import resolve_protocol_target, resolve_url_target

__all__ = [
    "AttemptOutcome",
    "ConnectionConfig",
    "ContentKind",
    "FingerprintVerifier",
    "Headers",
    "HttpClientService",
    "HttpMethod",
    "HttpProtocol",
    "HttpResponse",
    "HttpService",
    "HttpxTransport",
    "OpenFailure",
    "OutcomeKind",
    "PeerCertificate",
    "RequestExecutor",
    "RequestOptions",
    "RequestSpec",
    "ResultTuple",
    "ScriptedResponse",
    "ScriptedTransport",
    "Target",
    "Transport",
    "TransportRequest",
    "TransportResponse",
    "bind_fingerprint",
    "classify_content_type",
    "create_http_client",
    "decode_body",
    "encode_form_body",
    "header_value",
    "normalize_headers",
    "resolve_protocol_target",
    "resolve_url_target",
    "to_result",
]
