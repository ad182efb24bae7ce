"""Bridge from async request handlers to blocking device calls."""

from __future__ import annotations

import asyncio
import contextvars
import functools
from collections.abc import Callable
from typing import Any, TypeVar

__all__ = ["run_blocking"]

T = TypeVar("T")


async def run_blocking(fn: Callable[..., T], *args: Any) -> T:
    """Run ``fn(*args)`` in the loop's default executor.

    Camera I/O through libgphoto2 and small file writes block; running
    them here keeps the event loop serving other requests meanwhile.

    The call runs in a copy of the caller's context, so a ``LogContext``
    entered around it still tags records the worker thread logs.

    Example:
        >>> jpeg = await run_blocking(camera.take_preview)
    """
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    return await loop.run_in_executor(None, functools.partial(ctx.run, fn, *args))
