# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .http.models import HttpResponse

TIMEOUT_MESSAGE = "Failed due timeout reason"
ABORT_MESSAGE = "Failed due abort reason"


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    TRANSPORT = "TRANSPORT"
    TIMEOUT = "TIMEOUT"
    ABORT = "ABORT"
    DECODE = "DECODE"
    STATUS = "STATUS"


class HttpServiceError(Exception):
    """Base class for every failure surfaced in a result tuple."""

    category: ErrorCategory = ErrorCategory.TRANSPORT

    @property
    def retryable(self) -> bool:
        return self.category not in (ErrorCategory.VALIDATION, ErrorCategory.DECODE)


class RequestValidationError(HttpServiceError, ValueError):
    """Bad local input (host, scheme, retry budget); never retried."""

    category = ErrorCategory.VALIDATION


class TransportError(HttpServiceError):
    """Connection-level failure wrapping the raw transport exception."""

    category = ErrorCategory.TRANSPORT

    def __init__(self, cause: BaseException):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause
        self.__cause__ = cause


class RequestTimeoutError(HttpServiceError):
    category = ErrorCategory.TIMEOUT

    def __init__(self, message: str = TIMEOUT_MESSAGE):
        super().__init__(message)


class ServiceUnavailableError(HttpServiceError):
    """Raised when the exchange was aborted before a response completed."""

    category = ErrorCategory.ABORT

    def __init__(self, message: str = ABORT_MESSAGE):
        super().__init__(message)


class DecodeError(HttpServiceError, ValueError):
    category = ErrorCategory.DECODE

    def __init__(self, message: str, *, content_type: str | None = None, body: bytes = b""):
        super().__init__(message)
        self.content_type = content_type
        self.body = body


class HttpStatusError(HttpServiceError):
    """Non-2xx response; carries the decoded (or raw) response."""

    category = ErrorCategory.STATUS

    def __init__(self, response: HttpResponse):
        message = f"Request failed with status code {response.status_code}"
        if response.status_message:
            message = f"{message} ({response.status_message})"
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def status_message(self) -> str | None:
        return self.response.status_message

    @property
    def headers(self) -> dict[str, str]:
        return self.response.headers

    @property
    def data(self) -> Any:
        return self.response.data


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map raw transport exceptions to an ErrorCategory.

    Only TIMEOUT, ABORT and TRANSPORT come out of here; the remaining categories
    are decided by the executor itself.
    """
    import httpx

    if isinstance(exc, HttpServiceError):
        return exc.category

    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.RemoteProtocolError, ConnectionAbortedError)):
        return ErrorCategory.ABORT

    return ErrorCategory.TRANSPORT


def error_for_category(category: ErrorCategory, exc: BaseException) -> HttpServiceError:
    """Build the typed error surfaced once a transport failure is final."""
    if isinstance(exc, HttpServiceError):
        return exc
    if category is ErrorCategory.TIMEOUT:
        return RequestTimeoutError()
    if category is ErrorCategory.ABORT:
        return ServiceUnavailableError()
    return TransportError(exc)


def error_category_to_reason(category: Optional[ErrorCategory]) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.VALIDATION: "Invalid request options",
        ErrorCategory.TRANSPORT: "Network connectivity issue",
        ErrorCategory.TIMEOUT: "Network timeout",
        ErrorCategory.ABORT: "Request aborted",
        ErrorCategory.DECODE: "Malformed response body",
        ErrorCategory.STATUS: "Unsuccessful status code",
        None: "",
    }
    return mapping.get(category, "Request failed due to network error")


__all__ = [
    "ABORT_MESSAGE",
    "TIMEOUT_MESSAGE",
    "DecodeError",
    "ErrorCategory",
    "HttpServiceError",
    "HttpStatusError",
    "RequestTimeoutError",
    "RequestValidationError",
    "ServiceUnavailableError",
    "TransportError",
    "categorize_exception",
    "error_category_to_reason",
    "error_for_category",
]
