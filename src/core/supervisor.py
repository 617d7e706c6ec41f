"""Supervision of the long-running tasks.

Every task we start is meant to run forever, so any of them finishing, even
successfully, means the process is in a state it cannot recover from.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Mapping, NoReturn

LOGGER = logging.getLogger(__name__)


class TaskTerminated(RuntimeError):
    """A supervised task finished; the process should exit."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"Task {name!r} {message}")
        self.name = name


async def supervise(tasks: Mapping[str, Awaitable[Any]]) -> NoReturn:
    """Run the named awaitables until the first one finishes, then raise."""

    if not tasks:
        raise ValueError("supervise() needs at least one task")

    running = {asyncio.ensure_future(awaitable): name for name, awaitable in tasks.items()}
    LOGGER.info("Supervising %s tasks: %s", len(running), ", ".join(running.values()))
    try:
        done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in running:
            if not task.done():
                task.cancel()
        await asyncio.gather(*running, return_exceptions=True)

    # Report the first task in start order when several finished together.
    task = next(task for task in running if task in done)
    name = running[task]

    if task.cancelled():
        LOGGER.error("Task %s was cancelled. This is an error. Exiting.", name)
        raise TaskTerminated(name, "was cancelled")

    error = task.exception()
    if error is not None:
        LOGGER.error("Task %s failed: %s. Exiting.", name, error)
        raise TaskTerminated(name, f"failed: {error}") from error

    LOGGER.error("Task %s has finished. This is an error. Exiting.", name)
    raise TaskTerminated(name, "has finished")
