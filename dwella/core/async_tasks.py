"""Best-effort background work that must never fail the request that queued it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)
_PENDING_TASKS: set[asyncio.Task[Any]] = set()


def _log_outcome(task: asyncio.Task[Any]) -> None:
    _PENDING_TASKS.discard(task)
    if task.cancelled():
        logger.warning("Background task cancelled: %s", task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task failed: %s", task.get_name(), exc_info=exc)


def fire_and_forget(
    coro: Coroutine[Any, Any, Any], *, task_name: str | None = None
) -> asyncio.Task[Any] | None:
    """Schedule ``coro`` on the running loop and return without awaiting it.

    Returns None, and closes the coroutine unstarted, when no loop is running.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        logger.debug("No running loop; dropped background task %s", task_name)
        return None

    task = loop.create_task(coro, name=task_name or "background")
    _PENDING_TASKS.add(task)
    task.add_done_callback(_log_outcome)
    return task


def pending_task_count() -> int:
    return sum(1 for task in _PENDING_TASKS if not task.done())


async def drain_background_tasks(timeout_seconds: float = 1.0) -> int:
    """Wait up to ``timeout_seconds`` for queued tasks; cancel the stragglers.

    Called at shutdown and by tests before asserting on outbox rows. Returns
    the number of tasks that had to be cancelled.
    """
    pending = [task for task in _PENDING_TASKS if not task.done()]
    if not pending:
        return 0

    _, late = await asyncio.wait(pending, timeout=timeout_seconds)
    for task in late:
        task.cancel()
    if late:
        await asyncio.gather(*late, return_exceptions=True)
        logger.warning("Cancelled %d background task(s) still running at drain", len(late))
    return len(late)
