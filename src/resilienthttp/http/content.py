# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Response body decoding by declared content type, and request body encoding."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any
from urllib.parse import quote, urlencode

from ..config import DEFAULT_BINARY_MIME_PREFIXES, DEFAULT_BINARY_MIME_TYPES
from ..errors import DecodeError
from .models import Body

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE_PREFIX = "application/json"


class ContentKind(str, Enum):
    JSON = "json"
    BINARY = "binary"
    TEXT = "text"


def classify_content_type(
    content_type: str | None,
    *,
    binary_types: Iterable[str] = DEFAULT_BINARY_MIME_TYPES,
    binary_prefixes: Iterable[str] = DEFAULT_BINARY_MIME_PREFIXES,
) -> ContentKind:
    """
    Classify a Content-Type header value.

    JSON is a case-insensitive prefix match. Binary types must match the full
    header value exactly (parameters included); binary prefixes match the start.
    """
    if not content_type:
        return ContentKind.TEXT
    value = content_type.strip().lower()
    if value.startswith(JSON_CONTENT_TYPE_PREFIX):
        return ContentKind.JSON
    if value in {t.lower() for t in binary_types} or any(value.startswith(p.lower()) for p in binary_prefixes):
        return ContentKind.BINARY
    return ContentKind.TEXT


def decode_body(
    content: bytes,
    content_type: str | None,
    *,
    binary_types: Iterable[str] = DEFAULT_BINARY_MIME_TYPES,
    binary_prefixes: Iterable[str] = DEFAULT_BINARY_MIME_PREFIXES,
) -> Any:
    """
    Convert a fully buffered body into parsed JSON, raw bytes or text.

    An empty body decodes to None for every content type. Malformed or unparseable JSON
    raises DecodeError.
    """
    if not content:
        return None

    kind = classify_content_type(content_type, binary_types=binary_types, binary_prefixes=binary_prefixes)
    if kind is ContentKind.BINARY:
        return bytes(content)

    text = bytes(content).decode("utf-8", errors="replace")
    if kind is ContentKind.TEXT:
        return text

    try:
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        # also covers oversized integers and excessive nesting
        raise DecodeError(f"Failed to parse JSON body: {exc}", content_type=content_type, body=bytes(content)) from exc


def _form_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    # nested structures have no flat form representation
    return ""


def encode_form_body(data: Mapping[str, Any]) -> str:
    """Encode a mapping as application/x-www-form-urlencoded; sequences repeat their key."""
    pairs: list[tuple[str, str]] = []
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), _form_value(item)) for item in value)
        else:
            pairs.append((str(key), _form_value(value)))
    return urlencode(pairs, safe="!'()*", quote_via=quote)


def prepare_body(body: Body | None) -> bytes | None:
    """Return the bytes to write for a request body, or None when nothing is sent."""
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body) or None
    if isinstance(body, str):
        return body.encode("utf-8") or None
    if isinstance(body, Mapping):
        return encode_form_body(body).encode("ascii") or None
    raise TypeError(f"Unsupported request body type: {type(body).__name__}")


__all__ = [
    "FORM_CONTENT_TYPE",
    "ContentKind",
    "classify_content_type",
    "decode_body",
    "encode_form_body",
    "prepare_body",
]
