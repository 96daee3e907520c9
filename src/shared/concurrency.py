"""Bounded-concurrency task pool for per-store lookups.

The pool runs a fixed number of worker loops over one shared list of
items. Each worker claims the next unclaimed index under a lock, calls the
resolver, and appends any non-None result to a shared list. A failing item
is logged and recorded but never stops the other workers.

Usage:
    from src.shared.concurrency import TaskPool

    pool = TaskPool(concurrency=8, item_pause=0.04)
    details = pool.run(store_ids, resolve_detail)
    if pool.errors:
        logging.warning(f"{len(pool.errors)} lookups failed")
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from src.shared.constants import PAUSE, WORKERS

__all__ = [
    'TaskPool',
    'run_pool',
]

T = TypeVar('T')
R = TypeVar('R')


class TaskPool:
    """Run a resolver over items with at most ``concurrency`` in flight.

    Attributes:
        concurrency: Number of worker loops
        item_pause: Seconds each worker sleeps after an item
        deadline: Optional time.monotonic() value after which no new item
            is claimed
        errors: (item, exception) pairs from the last run
        skipped: Items never dispatched in the last run because of the deadline
    """

    def __init__(
        self,
        concurrency: int = WORKERS.POOL_SIZE,
        item_pause: float = PAUSE.ITEM_PAUSE,
        deadline: Optional[float] = None,
        name: str = "pool",
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self.item_pause = item_pause
        self.deadline = deadline
        self.name = name
        self.errors: List[Tuple[Any, BaseException]] = []
        self.skipped = 0

        self._lock = threading.Lock()
        self._next_index = 0

    def _claim(self, total: int) -> Optional[int]:
        """Return the next unclaimed index, or None when done or past deadline."""
        with self._lock:
            if self._next_index >= total:
                return None
            if self.deadline is not None and time.monotonic() >= self.deadline:
                return None
            index = self._next_index
            self._next_index += 1
            return index

    def _worker(self, items: Sequence[T], resolver: Callable[[T], Optional[R]], results: List[R]) -> None:
        while True:
            index = self._claim(len(items))
            if index is None:
                return

            item = items[index]
            try:
                result = resolver(item)
            except Exception as e:
                # Per-item failures stay inside the pool
                logging.warning(f"[{self.name}] Lookup failed for {item!r}: {e}")
                with self._lock:
                    self.errors.append((item, e))
                result = None

            if result is not None:
                with self._lock:
                    results.append(result)

            if self.item_pause > 0:
                time.sleep(self.item_pause)

    def run(self, items: Sequence[T], resolver: Callable[[T], Optional[R]]) -> List[R]:
        """Resolve every item and collect non-None results.

        Args:
            items: Items to process
            resolver: Called once per item; may return None or raise

        Returns:
            Non-None results in completion order
        """
        items = list(items)
        self.errors = []
        self.skipped = 0
        self._next_index = 0
        results: List[R] = []

        if not items:
            return results

        worker_count = min(self.concurrency, len(items))
        logging.info(f"[{self.name}] Resolving {len(items)} items with {worker_count} workers")

        with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix=self.name) as executor:
            futures = [
                executor.submit(self._worker, items, resolver, results)
                for _ in range(worker_count)
            ]
            for future in futures:
                future.result()

        self.skipped = len(items) - self._next_index
        if self.skipped:
            logging.warning(f"[{self.name}] Deadline reached, {self.skipped} items not dispatched")
        logging.info(
            f"[{self.name}] Finished: {len(results)} resolved, {len(self.errors)} failed"
        )
        return results


def run_pool(
    items: Sequence[T],
    resolver: Callable[[T], Optional[R]],
    concurrency: int = WORKERS.POOL_SIZE,
    item_pause: float = PAUSE.ITEM_PAUSE,
) -> List[R]:
    """Functional shortcut for TaskPool(...).run(items, resolver)."""
    return TaskPool(concurrency=concurrency, item_pause=item_pause).run(items, resolver)
