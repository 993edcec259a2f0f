"""Run blocking SDK calls off the event loop with a hard deadline."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from prexplain_core.errors import ExternalServiceError

T = TypeVar("T")


async def call_blocking(fn: Callable[..., T], *args: Any, timeout: float | None, what: str, **kwargs: Any) -> T:
    """Await ``fn(*args, **kwargs)`` in a worker thread.

    A timeout is raised as ExternalServiceError. The thread itself is not
    interrupted; the SDK clients carry their own socket timeouts as well.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout)
    except asyncio.TimeoutError as e:
        raise ExternalServiceError(f"{what} timed out after {timeout}s") from e
