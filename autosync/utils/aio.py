# autosync/utils/aio.py

"""
asyncio helpers
"""
import asyncio
from typing import Awaitable, Tuple


async def wait_first(*aws: Awaitable) -> Tuple[asyncio.Future, ...]:
    """
    Wait until at least one awaitable finishes, cancelling the rest

    Args:
        aws: Awaitables to race

    Returns:
        One future per awaitable, in argument order. Check ``done()`` and
        ``cancelled()`` on each to see which ones completed.
    """
    futures = tuple(asyncio.ensure_future(aw) for aw in aws)
    try:
        await asyncio.wait(futures, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for future in futures:
            if not future.done():
                future.cancel()
    return futures


def completed(future: asyncio.Future) -> bool:
    """True if future finished normally (not cancelled)"""
    return future.done() and not future.cancelled()
