# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for resilienthttp."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"resilienthttp/{__version__}"
DEFAULT_BINARY_MIME_TYPES = ("application/pdf", "application/p7s")
DEFAULT_BINARY_MIME_PREFIXES = ("image/",)


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_float_env(name: str, default: float | None) -> float | None:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        parsed = float(value)
        return parsed if parsed > 0 else None
    except ValueError:
        return default


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip().lower() for item in value.split(",") if item.strip())
    return items or default


def _verify_env(default: bool | str) -> bool | str:
    if not _bool_env("RESILIENTHTTP_VERIFY_SSL", default is not False):
        return False
    return os.getenv("RESILIENTHTTP_CA_BUNDLE") or default


@dataclass(frozen=True)
class HttpSettings:
    """Process-wide request defaults. Per-call options take precedence."""

    timeout: float | None = None
    max_retries: int = 0
    retry_delay: float = 0.0
    user_agent: str = DEFAULT_USER_AGENT
    # True (certifi bundle), False (no verification) or a CA bundle path
    verify_ssl: bool | str = True
    binary_mime_types: tuple[str, ...] = DEFAULT_BINARY_MIME_TYPES
    binary_mime_prefixes: tuple[str, ...] = DEFAULT_BINARY_MIME_PREFIXES

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        return cls(
            timeout=_optional_float_env("RESILIENTHTTP_TIMEOUT", cls.timeout),
            max_retries=max(0, _int_env("RESILIENTHTTP_MAX_RETRIES", cls.max_retries)),
            retry_delay=max(0.0, _float_env("RESILIENTHTTP_RETRY_DELAY", cls.retry_delay)),
            user_agent=os.getenv("RESILIENTHTTP_USER_AGENT", cls.user_agent),
            verify_ssl=_verify_env(cls.verify_ssl),
            binary_mime_types=_list_env("RESILIENTHTTP_BINARY_MIME_TYPES", cls.binary_mime_types),
            binary_mime_prefixes=_list_env("RESILIENTHTTP_BINARY_MIME_PREFIXES", cls.binary_mime_prefixes),
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()
