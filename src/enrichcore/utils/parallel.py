"""
Order-preserving thread-pool map.

Results are written into pre-sized slots addressed by input position, so the
output order is the input order no matter which worker finishes first. The
first worker exception propagates to the caller and aborts the batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

__all__ = ['map_in_order']

T = TypeVar("T")
R = TypeVar("R")


def map_in_order(
    fn: Callable[[T], R],
    items: Sequence[T],
    n_jobs: int = 1,
) -> list[R]:
    """
    Apply ``fn`` to every item, in parallel when ``n_jobs > 1``.

    Args:
        fn: Pure function of one item; must not mutate shared state.
        items: Inputs, in canonical order.
        n_jobs: Worker threads (1 runs inline, no pool).

    Returns:
        ``[fn(item) for item in items]``, same order as ``items``.
    """
    if n_jobs <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    slots: list[R | None] = [None] * len(items)
    logger.debug(f"Dispatching {len(items)} tasks to {n_jobs} workers")

    with ThreadPoolExecutor(max_workers=min(n_jobs, len(items))) as executor:
        futures = {executor.submit(fn, item): i for i, item in enumerate(items)}
        try:
            for future in as_completed(futures):
                slots[futures[future]] = future.result()
        except BaseException:
            for pending in futures:
                pending.cancel()
            raise

    return slots
