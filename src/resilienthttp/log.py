# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for resilienthttp."""

from __future__ import annotations

import logging
import os
from contextlib import suppress
from typing import Any, Union

DEFAULT_LOG_LEVEL = os.getenv("RESILIENTHTTP_LOG_LEVEL", "WARNING").upper()
LOGGER_NAME = "resilienthttp"

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, effective_level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def get_logger(logger: LoggerLike | None = None) -> LoggerLike:
    return logger if logger is not None else logging.getLogger(LOGGER_NAME)


def log_event(logger: LoggerLike, level: int, message: str, **metadata: Any) -> None:
    """Emit a log record with structured metadata; a failing logger never reaches the caller."""
    with suppress(Exception):
        if metadata:
            logger.log(level, message, extra={"metadata": metadata})
        else:
            logger.log(level, message)


__all__ = ["LOGGER_NAME", "LoggerLike", "get_logger", "log_event", "setup_logging"]
