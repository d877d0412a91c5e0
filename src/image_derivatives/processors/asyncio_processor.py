"""AsyncIO processor implementation - runs blocking materialization off the event loop."""

import asyncio
from typing import Any, Callable, List, Optional, Sequence, TypeVar

Plan = TypeVar("Plan")


async def materialize_batch_async(
    plans: Sequence[Plan],
    materialize: Callable[[Plan], Optional[Any]],
    max_workers: int = 10,
) -> List[Optional[Any]]:
    """
    Materialize output plans concurrently from async code.

    Each plan runs in the default executor via ``asyncio.to_thread``; a
    semaphore bounds how many run at once.

    Args:
        plans: Output plans in request order
        materialize: Blocking callable turning one plan into a record
        max_workers: Maximum concurrent materializations

    Returns:
        One result per plan, in plan order

    Raises:
        The first failure in plan order, once every plan has finished
    """
    semaphore = asyncio.Semaphore(max(1, max_workers))

    async def _run(plan: Plan) -> Optional[Any]:
        async with semaphore:
            return await asyncio.to_thread(materialize, plan)

    # Every task is awaited so no failure goes unretrieved
    results = await asyncio.gather(*(_run(plan) for plan in plans), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
