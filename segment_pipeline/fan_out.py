"""
Parallel fan-out / fan-in over a bounded thread pool.

Each task returns its own result and results are only combined once every task
has finished, so no container is ever shared between threads.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List
from segment_pipeline import config


def fan_out(
    func: Callable,
    items: Iterable,
    max_workers: int = config.default_max_workers,
    thread_name_prefix: str = "segment-sync"
) -> List:
    """
    Run `func` on every item concurrently and return the results in item order.

    The first task to raise stops the fan-out: tasks that have not started yet
    are cancelled and the exception propagates to the caller. Callers that need
    per-item isolation must catch inside `func`.

    Args:
        func: Function called with one item
        items: Items to process
        max_workers: Concurrency ceiling
        thread_name_prefix: Prefix for worker thread names

    Returns:
        List of results, same order as `items`
    """
    items = list(items)
    if not items:
        return []

    results = [None] * len(items)
    workers = max(1, min(max_workers, len(items)))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix) as executor:
        futures = {executor.submit(func, item): index for index, item in enumerate(items)}
        for future in as_completed(futures):
            try:
                results[futures[future]] = future.result()
            except Exception:
                for pending in futures:
                    pending.cancel()
                raise

    return results


def flatten(nested: Iterable[List]) -> List:
    return [item for group in nested for item in group]
