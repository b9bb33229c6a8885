# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across resilienthttp."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Union

from ..config import HttpSettings
from ..errors import RequestValidationError

Headers = dict[str, str]
Body = Union[str, bytes, Mapping[str, Any]]
ResultTuple = Union[tuple[Exception, None], tuple[None, "HttpResponse"]]


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class HttpProtocol(str, Enum):
    HTTP = "http"
    HTTPS = "https"


def is_success_status(status_code: int | None) -> bool:
    return status_code is not None and 200 <= status_code < 300


@dataclass(frozen=True)
class Target:
    """Resolved connection target shared by every front-end."""

    scheme: str
    host: str
    port: int | None = None

    @property
    def secure(self) -> bool:
        return self.scheme == HttpProtocol.HTTPS.value

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host and not self.host.startswith("[") else self.host
        return f"{host}:{self.port}" if self.port is not None else host

    def url(self, path: str = "/") -> str:
        path = path or "/"
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.scheme}://{self.netloc}{path}"


@dataclass
class RequestOptions:
    """Caller-facing per-call options; unset retry/timeout fields fall back to HttpSettings."""

    host: str | None = None
    hostname: str | None = None
    port: int | str | None = None
    path: str = "/"
    headers: Headers | None = None
    timeout: float | None = None
    max_retries: int | None = None
    retry_delay: float | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RequestOptions:
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise RequestValidationError(f"Unknown request options: {', '.join(unknown)}")
        values = {key: value for key, value in data.items() if value is not None}
        return cls(**values)

    @classmethod
    def coerce(cls, options: RequestOptions | Mapping[str, Any] | None) -> RequestOptions:
        if options is None:
            return cls()
        if isinstance(options, RequestOptions):
            return options
        if isinstance(options, Mapping):
            return cls.from_mapping(options)
        raise RequestValidationError(f"Unsupported request options type: {type(options).__name__}")


@dataclass(frozen=True)
class RequestSpec:
    """Immutable per-call request description consumed by the executor."""

    target: Target
    method: HttpMethod = HttpMethod.GET
    path: str = "/"
    headers: Headers = field(default_factory=dict)
    body: Body | None = None
    timeout: float | None = None
    max_retries: int = 0
    retry_delay: float = 0.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise RequestValidationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise RequestValidationError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.timeout is not None and self.timeout <= 0:
            raise RequestValidationError(f"timeout must be > 0, got {self.timeout}")

    @property
    def url(self) -> str:
        return self.target.url(self.path)

    @classmethod
    def from_options(
        cls,
        options: RequestOptions,
        *,
        target: Target,
        method: HttpMethod,
        body: Body | None,
        settings: HttpSettings,
    ) -> RequestSpec:
        return cls(
            target=target,
            method=method,
            path=options.path or "/",
            headers=dict(options.headers or {}),
            body=body,
            timeout=options.timeout if options.timeout is not None else settings.timeout,
            max_retries=options.max_retries if options.max_retries is not None else settings.max_retries,
            retry_delay=options.retry_delay if options.retry_delay is not None else settings.retry_delay,
        )


@dataclass
class HttpResponse:
    """Decoded HTTP response returned in the value slot of a result tuple."""

    status_code: int
    headers: Headers = field(default_factory=dict)
    data: Any = None
    status_message: str | None = None
    url: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return is_success_status(self.status_code)

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if isinstance(data, (bytes, bytearray)):
            data = {"bytes": len(data)}
        return {
            "status_code": self.status_code,
            "status_message": self.status_message,
            "headers": dict(self.headers),
            "data": data,
            "url": self.url,
            "meta": dict(self.meta),
        }


__all__ = [
    "Body",
    "Headers",
    "HttpMethod",
    "HttpProtocol",
    "HttpResponse",
    "RequestOptions",
    "RequestSpec",
    "ResultTuple",
    "Target",
    "is_success_status",
]
