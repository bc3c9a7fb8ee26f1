"""Fixed-size worker pool over a shared index counter."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], R],
    *,
    concurrency: int,
    on_complete: Optional[Callable[[int, R], None]] = None,
) -> List[R]:
    """Process ``items`` with at most ``concurrency`` concurrent ``worker`` calls.

    Each pool thread loops: claim the next unclaimed index, process it, repeat,
    until the index space is exhausted. ``on_complete(index, result)`` runs on the
    worker thread right after each item finishes. Results are returned in input
    order. The first exception raised by ``worker`` or ``on_complete`` stops new
    claims and is re-raised once all running workers have returned.
    """
    total = len(items)
    if total == 0:
        return []

    results: List[Optional[R]] = [None] * total
    next_index = 0
    failed = False
    lock = threading.Lock()

    def claim() -> int:
        nonlocal next_index
        with lock:
            if failed or next_index >= total:
                return -1
            index = next_index
            next_index += 1
            return index

    def loop() -> None:
        nonlocal failed
        while True:
            index = claim()
            if index < 0:
                return
            try:
                result = worker(items[index])
                results[index] = result
                if on_complete is not None:
                    on_complete(index, result)
            except BaseException:
                with lock:
                    failed = True
                raise

    workers = max(1, min(concurrency, total))
    logger.debug(f"Running {total} task(s) on {workers} worker(s)")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(loop) for _ in range(workers)]
        errors = [f.exception() for f in futures]

    for error in errors:
        if error is not None:
            raise error

    return results  # type: ignore[return-value]
