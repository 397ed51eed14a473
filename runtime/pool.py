"""Bounded worker pool helpers built on ThreadPoolExecutor."""

from concurrent.futures import ThreadPoolExecutor, as_completed, TimeoutError as FuturesTimeout
from typing import Callable, List, Sequence, TypeVar

from .context import RunContext

T = TypeVar("T")
R = TypeVar("R")


def map_bounded(
    fn: Callable[[T], R],
    items: Sequence[T],
    context: RunContext,
    stage: str,
    max_workers: int = None,
) -> List[R]:
    """Apply fn to every item on a bounded pool and return results in input order.

    Workers produce independent results; merging happens here, after the pool
    drains. When the run's soft deadline passes, pending work is cancelled,
    the run is marked partial and the results finished so far are returned.
    Exceptions raised by fn propagate; per-item recovery belongs inside fn.
    """
    if not items:
        return []
    if context.expired:
        context.mark_partial(stage)
        return []

    results = {}
    executor = ThreadPoolExecutor(max_workers=max_workers or context.file_workers)
    try:
        futures = {executor.submit(fn, item): index for index, item in enumerate(items)}
        try:
            for future in as_completed(futures, timeout=context.remaining_seconds):
                results[futures[future]] = future.result()
        except FuturesTimeout:
            for future in futures:
                future.cancel()
            context.mark_partial(stage)
    finally:
        executor.shutdown(wait=not context.partial, cancel_futures=True)

    return [results[index] for index in sorted(results)]
