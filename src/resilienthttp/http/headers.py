# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header normalization utilities.

HTTP header field names are case-insensitive (RFC 9110). Responses expose their
headers as plain dicts keyed by lower-case names, whatever the transport used.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any


def _iter_header_items(headers: Any) -> Iterable[tuple[object, object]]:
    """
    Yield (name, value) pairs from the header containers transports hand back:
    plain dicts, httpx.Headers (via multi_items) or an iterable of pairs.
    """
    if not headers:
        return ()
    multi_items = getattr(headers, "multi_items", None)
    if callable(multi_items):
        return multi_items()
    if isinstance(headers, Mapping):
        return headers.items()
    return headers


def normalize_headers(headers: Any) -> dict[str, str]:
    """Return a lowercase-keyed copy of a header container; repeated fields are comma-joined."""
    out: dict[str, str] = {}
    for key, value in _iter_header_items(headers):
        if key is None:
            continue
        name = (key.decode("latin-1") if isinstance(key, bytes) else str(key)).strip().lower()
        if not name:
            continue
        text = "" if value is None else (value.decode("latin-1") if isinstance(value, bytes) else str(value))
        out[name] = f"{out[name]}, {text}" if name in out else text
    return out


def header_value(headers: Mapping[str, str] | None, name: str, default: str = "") -> str:
    """Return a header value using case-insensitive key matching."""
    if not headers or not name:
        return default
    lower = name.lower()
    if lower in headers:
        value = headers[lower]
        return default if value is None else str(value).strip()
    for key, value in headers.items():
        if str(key).lower() == lower:
            return default if value is None else str(value).strip()
    return default


def has_header(headers: Mapping[str, str] | None, name: str) -> bool:
    lower = name.lower()
    return any(str(key).lower() == lower for key in (headers or {}))


__all__ = ["has_header", "header_value", "normalize_headers"]
