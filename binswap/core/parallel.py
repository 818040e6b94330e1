# SPDX-License-Identifier: MIT
"""Bounded-parallel fan-out over independent work items.

Every substitution stage that processes independent targets or files
goes through parallel_map. The call returns only when all units have
finished, so it is the join point between two stages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    jobs: int | None = None,
) -> list[R]:
    """Apply func to every item with at most `jobs` workers.

    Results are returned in input order. The first failing unit cancels
    the units that have not started yet and its exception is re-raised
    once the running units have finished.

    Args:
        func: Function applied to each item.
        items: Independent work items.
        jobs: Maximum number of workers (None lets the executor decide,
              1 or less runs sequentially in the calling thread).

    Returns:
        List of results, one per item.
    """
    work = list(items)
    if not work:
        return []
    if (jobs is not None and jobs <= 1) or len(work) == 1:
        return [func(item) for item in work]

    results: list[R | None] = [None] * len(work)
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        futures: dict[Future[R], int] = {
            executor.submit(func, item): index for index, item in enumerate(work)
        }
        for future in as_completed(futures):
            error = future.exception()
            if error is not None:
                cancelled = sum(1 for other in futures if other.cancel())
                logger.debug("Unit failed, cancelled %d pending unit(s)", cancelled)
                raise error
            results[futures[future]] = future.result()
    return results  # type: ignore[return-value]


def parallel_flat_map(
    func: Callable[[T], Iterable[R]],
    items: Iterable[T],
    *,
    jobs: int | None = None,
) -> list[R]:
    """Like parallel_map, concatenating the iterables func returns."""
    flat: list[R] = []
    for chunk in parallel_map(func, items, jobs=jobs):
        flat.extend(chunk)
    return flat
