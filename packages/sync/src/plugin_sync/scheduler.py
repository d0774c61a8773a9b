"""Fixed-size batch execution with a pause between batches.

Every item is attempted exactly once. Batches run strictly in order; items
inside a batch run concurrently. Operations are expected to contain their own
failures: anything they raise propagates and aborts the run.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, TypeVar

from plugin_sync_common import get_logger

from plugin_sync.metrics import BATCH_DURATION

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 2.0


@dataclass
class BatchStats:
    batches: int = 0
    delays: int = 0
    attempted: int = 0


def partition(items: Sequence[T], batch_size: int) -> list[Sequence[T]]:
    """Contiguous chunks of at most batch_size items, in order."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [items[i : i + batch_size] for i in range(0, len(items), batch_size)]


async def run_in_batches(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[object]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay: float = DEFAULT_BATCH_DELAY,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> BatchStats:
    """Run ``operation`` over ``items`` in batches.

    Args:
        items: Items in the order they should be started
        operation: Async callable applied to each item
        batch_size: Items started together
        delay: Seconds to pause after each batch except the last
        sleep: Pause implementation (injected by tests)

    Returns:
        BatchStats with batch, delay and attempt counts
    """
    stats = BatchStats()
    batches = partition(items, batch_size)

    for index, batch in enumerate(batches):
        started = time.monotonic()
        await asyncio.gather(*(operation(item) for item in batch))
        BATCH_DURATION.observe(time.monotonic() - started)

        stats.batches += 1
        stats.attempted += len(batch)
        logger.info(
            "batch_completed",
            batch=index + 1,
            total_batches=len(batches),
            size=len(batch),
        )

        if index < len(batches) - 1:
            await sleep(delay)
            stats.delays += 1

    return stats
