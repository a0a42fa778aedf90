"""Bounded fan-out: run an async unit of work over many items, K at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from scripts.user_audit.errors import ConfigurationError, PoolAborted
from scripts.user_audit.models import ItemResult

logger = logging.getLogger("user_audit.pool")

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]


async def run_pool(
    items: Iterable[T],
    work: Callable[[T], Awaitable[R]],
    limit: int,
    progress: Optional[ProgressCallback] = None,
    stop: Optional[asyncio.Event] = None,
) -> list[ItemResult[R]]:
    """Run ``work`` on every item with at most ``limit`` invocations in flight.

    Result ``i`` always belongs to item ``i`` whatever the completion order.
    A failing invocation is stored as an error result and does not stop the
    others. Slots are reused as soon as an invocation finishes: each worker
    pulls the next item from a shared cursor right after completing one.

    ``progress(completed, total)`` is called after every completion.

    Setting ``stop`` prevents further admissions; invocations already running
    are awaited, and items never started get a PoolAborted error result.
    """
    if limit < 1:
        raise ConfigurationError(f"Concurrency limit must be at least 1, got {limit}")

    inputs = list(items)
    total = len(inputs)
    if not total:
        if progress is not None:
            progress(0, 0)
        return []

    slots: list[Optional[ItemResult[R]]] = [None] * total
    cursor = iter(enumerate(inputs))
    completed = 0

    def _finish(index: int, result: ItemResult[R]) -> None:
        nonlocal completed
        slots[index] = result
        completed += 1
        if progress is not None:
            progress(completed, total)

    async def _worker() -> None:
        while stop is None or not stop.is_set():
            entry = next(cursor, None)
            if entry is None:
                return
            index, item = entry
            try:
                value = await work(item)
            except Exception as exc:
                _finish(index, ItemResult(error=exc))
            else:
                _finish(index, ItemResult(value=value))

    workers = min(limit, total)
    logger.debug("Starting pool: %d items, %d workers", total, workers,
                 extra={"total": total})
    await asyncio.gather(*(_worker() for _ in range(workers)))

    aborted = 0
    for index, slot in enumerate(slots):
        if slot is None:
            aborted += 1
            _finish(index, ItemResult(error=PoolAborted("Item was not started")))
    if aborted:
        logger.warning("Pool stopped early, %d item(s) not started", aborted,
                       extra={"total": total})

    results: list[ItemResult[R]] = [slot for slot in slots if slot is not None]
    failed = sum(1 for r in results if not r.ok)
    logger.info(
        "Pool finished: %d succeeded, %d failed",
        total - failed,
        failed,
        extra={"completed": completed, "total": total},
    )
    return results
