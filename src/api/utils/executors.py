"""Runs blocking conversion and storage calls off the event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Await *func* on a worker thread.

    Cancelling the awaiting task does not stop the thread; callers pass a
    ``threading.Event`` through to the work when it must be interruptible.
    """

    return await asyncio.to_thread(func, *args, **kwargs)


__all__ = ["run_sync"]
