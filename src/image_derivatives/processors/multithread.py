"""Multithreaded processor implementation - uses a thread pool for parallelism."""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from ..core.logging_config import configure_worker_logging

Plan = TypeVar("Plan")


def materialize_batch(
    plans: Sequence[Plan],
    materialize: Callable[[Plan], Optional[Any]],
    max_workers: int = 10,
) -> List[Optional[Any]]:
    """
    Materialize output plans on a thread pool.

    Pillow releases the GIL while encoding, so threads give real parallelism
    for the pixel work as well as for disk writes.

    Args:
        plans: Output plans in request order
        materialize: Callable turning one plan into a record
        max_workers: Upper bound on worker threads

    Returns:
        One result per plan, in plan order. The first failure is re-raised
        after pending work is cancelled.
    """
    if not plans:
        return []

    def _run(plan: Plan) -> Optional[Any]:
        configure_worker_logging()
        return materialize(plan)

    workers = max(1, min(max_workers, len(plans)))
    with ThreadPoolExecutor(
        max_workers=workers, thread_name_prefix="materialize"
    ) as executor:
        futures = [executor.submit(_run, plan) for plan in plans]
        results: List[Optional[Any]] = []
        try:
            for future in futures:
                results.append(future.result())
        except BaseException:
            for future in futures:
                future.cancel()
            raise
    return results
