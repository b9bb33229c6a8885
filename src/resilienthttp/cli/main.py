# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""resilienthttp CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import Any
from urllib.parse import urlsplit

from ..config import HttpSettings, load_http_settings
from ..errors import HttpServiceError, HttpStatusError
from ..http import HttpMethod, RequestOptions, create_http_client
from ..log import setup_logging

CLI_TEXT_TRUNCATION_BYTES = 4096


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Issue one HTTP request with retries and print the decoded response")
    parser.add_argument("method", type=str.upper, choices=[m.value for m in HttpMethod], help="HTTP method")
    parser.add_argument("url", help="Full target URL including scheme")
    body = parser.add_mutually_exclusive_group()
    body.add_argument("--body", help="Raw request body")
    body.add_argument("--data", action="append", default=[], metavar="KEY=VALUE", help="Form field (repeatable)")
    parser.add_argument("--header", action="append", default=[], metavar="NAME:VALUE", help="Request header (repeatable)")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds")
    parser.add_argument("--retries", type=int, default=None, help="Maximum number of retries")
    parser.add_argument("--retry-delay", type=float, default=None, help="Delay between retries in seconds")
    parser.add_argument("--fingerprint", default=None, help="Expected SHA-256 certificate fingerprint (AB:CD:...)")
    parser.add_argument("--insecure", action="store_true", help="Skip CA verification")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of a plain summary")
    parser.add_argument("--log-level", default=None, help="Logging level (default: RESILIENTHTTP_LOG_LEVEL or WARNING)")
    return parser


def _parse_pairs(values: list[str], separator: str, label: str, *, multi: bool = True) -> dict[str, Any]:
    pairs: dict[str, Any] = {}
    for raw in values:
        key, sep, value = raw.partition(separator)
        if not sep or not key.strip():
            raise ValueError(f"Invalid {label} {raw!r}, expected NAME{separator}VALUE")
        name = key.strip()
        if name in pairs and multi:
            existing = pairs[name]
            pairs[name] = (existing if isinstance(existing, list) else [existing]) + [value.strip()]
        else:
            pairs[name] = value.strip()
    return pairs


def _split_url(url: str) -> tuple[str, str]:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url, "/"
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return f"{parts.scheme}://{parts.netloc}", path


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    return raw[:max_bytes].decode("utf-8", errors="ignore") + "...[truncated]"


def _printable(data: Any) -> Any:
    if isinstance(data, (bytes, bytearray)):
        return f"<{len(data)} bytes>"
    if isinstance(data, str):
        return _truncate_text_bytes(data, CLI_TEXT_TRUNCATION_BYTES)
    return data


def _error_payload(error: Exception) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": type(error).__name__,
        "message": str(error),
        "category": error.category.value if isinstance(error, HttpServiceError) else None,
    }
    if isinstance(error, HttpStatusError):
        payload["status_code"] = error.status_code
        payload["data"] = _printable(error.data)
    return payload


def _print_result(err: Exception | None, response: Any, *, as_json: bool) -> None:
    if err is not None:
        payload = _error_payload(err)
        if as_json:
            json.dump(payload, sys.stdout, indent=2, sort_keys=True, default=str)
            sys.stdout.write("\n")
        else:
            print(f"Error ({payload['error']}): {payload['message']}")
        return

    if as_json:
        payload = response.to_dict()
        payload["data"] = _printable(response.data)
        json.dump(payload, sys.stdout, indent=2, sort_keys=True, default=str)
        sys.stdout.write("\n")
        return

    print(f"Status: {response.status_code} {response.status_message or ''}".rstrip())
    for name, value in sorted(response.headers.items()):
        print(f"{name}: {value}")
    data = _printable(response.data)
    if data is not None:
        print()
        print(data if isinstance(data, str) else json.dumps(data, indent=2, sort_keys=True))


async def _run(args: argparse.Namespace, settings: HttpSettings) -> tuple[Exception | None, Any]:
    host, path = _split_url(args.url)
    options = RequestOptions(
        host=host,
        path=path,
        headers=_parse_pairs(args.header, ":", "header", multi=False),
        timeout=args.timeout,
        max_retries=args.retries,
        retry_delay=args.retry_delay,
    )
    body: Any = args.body if args.body is not None else (_parse_pairs(args.data, "=", "form field") or None)

    async with create_http_client(settings=settings) as client:
        if args.method == HttpMethod.GET.value:
            return await client.get(options, args.fingerprint)
        call = getattr(client, args.method.lower())
        return await call(options, args.fingerprint, body)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings: HttpSettings = load_http_settings()
    if args.insecure:
        settings = replace(settings, verify_ssl=False)

    try:
        err, response = asyncio.run(_run(args, settings))
    except ValueError as exc:
        parser.error(str(exc))

    _print_result(err, response, as_json=args.json)
    return 1 if err is not None else 0


if __name__ == "__main__":
    raise SystemExit(main())
