"""Bounded-concurrency execution of independent async tasks."""

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchProgress:
    """Counters reported after each task completes."""

    label: str
    succeeded: int
    failed: int
    total: int

    @property
    def completed(self) -> int:
        return self.succeeded + self.failed


ProgressCallback = Callable[[BatchProgress], None]


def log_progress(progress: BatchProgress) -> None:
    """Default progress reporter."""
    logger.info(
        "%s progress: %d/%d (succeeded %d, failed %d)",
        progress.label,
        progress.completed,
        progress.total,
        progress.succeeded,
        progress.failed,
    )


async def run_bounded(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
    *,
    label: str = "batch",
    on_progress: ProgressCallback | None = log_progress,
) -> list[T | None]:
    """Run every task with at most ``limit`` in flight.

    Slot ``i`` of the returned list holds the result of ``tasks[i]``, or
    ``None`` if that task raised. Failures, including a raising progress
    callback, are logged and never abort the remaining tasks.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    total = len(tasks)
    results: list[T | None] = [None] * total
    # next() on a shared counter cannot interleave between awaits, so every
    # index is claimed by exactly one worker.
    cursor = itertools.count()
    succeeded = 0
    failed = 0

    async def worker() -> None:
        nonlocal succeeded, failed
        while True:
            index = next(cursor)
            if index >= total:
                return
            try:
                results[index] = await tasks[index]()
            except Exception:
                failed += 1
                logger.exception("%s task %d failed", label, index)
            else:
                succeeded += 1
            if on_progress is not None:
                try:
                    on_progress(BatchProgress(label, succeeded, failed, total))
                except Exception:
                    logger.exception("%s progress callback failed", label)

    await asyncio.gather(*(worker() for _ in range(min(limit, total))))
    return results
