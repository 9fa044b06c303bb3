"""Fire-and-forget background tasks."""
import asyncio
from typing import Coroutine

import structlog

log = structlog.get_logger()

# Strong references so running tasks are not garbage collected
_pending: set[asyncio.Task] = set()


def _finished(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("background.task_failed", task=task.get_name(), error=str(exc), error_type=type(exc).__name__)


def fire_and_forget(coro: Coroutine, name: str) -> asyncio.Task:
    """
    Schedule a coroutine without waiting for it.

    Failures are logged, never raised to the caller.
    """
    task = asyncio.create_task(coro, name=name)
    _pending.add(task)
    task.add_done_callback(_finished)
    return task


async def drain(timeout: float = 5.0) -> None:
    """Wait (bounded) for outstanding background tasks, e.g. at shutdown."""
    if not _pending:
        return
    done, not_done = await asyncio.wait(set(_pending), timeout=timeout)
    if not_done:
        log.warning("background.drain_timeout", pending=len(not_done))
