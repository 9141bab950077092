import asyncio
import logging
from typing import Awaitable, TypeVar

from fastapi import Request

from taskvault.core.exceptions import RequestAbortedError


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_unless_disconnected(request: Request, awaitable: Awaitable[T], poll_interval: float = 0.5) -> T:
    """
    Await ``awaitable`` while watching for the client to hang up.

    Args:
        request: The request whose connection is watched.
        awaitable: Work to run on behalf of the request.
        poll_interval: Seconds between disconnect checks.

    Returns:
        The awaitable's result.

    Raises:
        RequestAbortedError: If the client disconnected first. The work is
            cancelled.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(f"Client disconnected during {request.url.path}, cancelling")
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise RequestAbortedError()
    finally:
        if not task.done():
            task.cancel()
