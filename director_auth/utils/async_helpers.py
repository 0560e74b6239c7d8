"""Async utility functions for bridging sync and async code."""

import asyncio
import functools
from typing import Any, Coroutine, TypeVar

T = TypeVar('T')


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run an async coroutine in a sync context.

    This is useful for Celery tasks and CLI commands that need to call
    async repository code.

    Args:
        coro: Async coroutine to run

    Returns:
        Result of the coroutine

    Raises:
        RuntimeError: If called from inside a running event loop
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("Cannot run async code from within an event loop")


def sync_to_async(func):
    """
    Decorator to convert a blocking function to an async function.

    The wrapped call runs in the default thread executor so CPU-bound work
    (bcrypt) does not stall the event loop.

    Args:
        func: Sync function to convert

    Returns:
        Async version of the function
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(func, *args, **kwargs)
        )

    return wrapper
