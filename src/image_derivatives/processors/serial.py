"""Serial processor implementation - materializes outputs one by one."""

from typing import Any, Callable, List, Optional, Sequence, TypeVar

Plan = TypeVar("Plan")


def materialize_batch(
    plans: Sequence[Plan],
    materialize: Callable[[Plan], Optional[Any]],
    max_workers: int = 1,
) -> List[Optional[Any]]:
    """
    Materializes output plans serially in the current thread.

    Args:
        plans: Output plans in request order.
        materialize: Callable turning one plan into a record.
        max_workers: Ignored; accepted so every strategy shares one signature.

    Returns:
        One result per plan, in plan order.
    """
    return [materialize(plan) for plan in plans]
