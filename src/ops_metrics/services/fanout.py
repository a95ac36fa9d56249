from __future__ import annotations

import asyncio
from typing import Any, Awaitable, List


# PUBLIC_INTERFACE
async def run_concurrently(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run awaitables as concurrent tasks and join them, returning results in argument order.

    On the first failure the remaining tasks are cancelled and that exception is re-raised
    as-is (no ExceptionGroup wrapping). If the caller is cancelled, all tasks are cancelled.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    if pending:
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    # Surface the earliest-listed failure among finished tasks.
    for t in tasks:
        if t in done and not t.cancelled() and t.exception() is not None:
            raise t.exception()  # type: ignore[misc]

    return [t.result() for t in tasks]
