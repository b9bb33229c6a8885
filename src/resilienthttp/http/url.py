# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Target resolution for the URL-based and protocol-bound front-ends."""

from __future__ import annotations

from urllib.parse import urlsplit

from ..errors import RequestValidationError
from .models import HttpProtocol, Target

SUPPORTED_SCHEMES = frozenset(protocol.value for protocol in HttpProtocol)


def _coerce_port(port: int | str | None) -> int | None:
    if port is None or port == "":
        return None
    try:
        value = int(port)
    except (TypeError, ValueError):
        raise RequestValidationError(f"Invalid port: {port!r}") from None
    if not 0 < value < 65536:
        raise RequestValidationError(f"Invalid port: {port!r}")
    return value


def resolve_url_target(host: str | None, port: int | str | None = None) -> Target:
    """
    Resolve a full URL host (``https://api.example.com:8443``) into a Target.

    Only scheme, hostname and port are taken from the URL. A port embedded in the
    URL wins over the separately supplied one.
    """
    raw = str(host or "").strip()
    try:
        parts = urlsplit(raw)
        url_port = parts.port
    except ValueError:
        raise RequestValidationError(f'Host "{host}" must include protocol') from None

    if not parts.scheme:
        raise RequestValidationError(f'Host "{host}" must include protocol')

    scheme = parts.scheme.lower()
    if scheme not in SUPPORTED_SCHEMES:
        raise RequestValidationError(f"Unknown protocol, {scheme}:")

    if not parts.hostname:
        raise RequestValidationError(f'Host "{host}" must include protocol')

    return Target(scheme=scheme, host=parts.hostname, port=url_port if url_port is not None else _coerce_port(port))


def resolve_protocol_target(protocol: HttpProtocol | str, host: str | None, port: int | str | None = None) -> Target:
    """Resolve a bare hostname for a front-end bound to a fixed protocol."""
    try:
        scheme = HttpProtocol(str(getattr(protocol, "value", protocol)).lower().rstrip(":")).value
    except ValueError:
        raise RequestValidationError(f"Unknown protocol, {protocol}") from None

    hostname = str(host or "").strip()
    if not hostname:
        raise RequestValidationError("Host is required")
    if "://" in hostname or "/" in hostname:
        raise RequestValidationError(f'Host "{host}" must be a bare hostname')

    return Target(scheme=scheme, host=hostname.strip("[]"), port=_coerce_port(port))


__all__ = ["SUPPORTED_SCHEMES", "resolve_protocol_target", "resolve_url_target"]
