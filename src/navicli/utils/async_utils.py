"""Async bridge for running blocking calls off the UI loop."""

from __future__ import annotations

import asyncio
import atexit
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, TypeVar

T = TypeVar("T")

# Catalog requests and state file IO run here.
_IO_POOL = ThreadPoolExecutor(max_workers=2, thread_name_prefix="navicli-io")
_WAKEUP_POLL_S = 0.1


@atexit.register
def _close_executor() -> None:
    _IO_POOL.shutdown(wait=False, cancel_futures=True)


async def run_blocking(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Await `func(*args, **kwargs)` on the IO pool.

    Cancelling the caller abandons the call; the worker finishes on its own and
    its result is dropped.
    """
    if not callable(func):
        raise TypeError("func must be callable")
    call = partial(func, *args, **kwargs)
    future = asyncio.get_running_loop().run_in_executor(_IO_POOL, call)
    # Poll instead of a bare await: some loops miss the executor's wakeup.
    while True:
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=_WAKEUP_POLL_S)
        except asyncio.TimeoutError:
            continue
