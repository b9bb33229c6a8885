# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Two-slot (error, value) result tuples at the public call boundary."""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TypeVar, Union

T = TypeVar("T")


async def to_result(awaitable: Awaitable[T]) -> Union[tuple[Exception, None], tuple[None, T]]:
    """Await `awaitable`; a raised exception lands in the first slot, a value in the second."""
    try:
        value = await awaitable
    except Exception as exc:  # noqa: BLE001
        return exc, None
    return None, value


__all__ = ["to_result"]
