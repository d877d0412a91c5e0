"""Materialization strategies with different concurrency models."""

from typing import Callable, Dict

from .serial import materialize_batch as serial_materialize_batch
from .multithread import materialize_batch as multithread_materialize_batch
from .asyncio_processor import materialize_batch_async

PROCESSORS: Dict[str, Callable] = {
    "serial": serial_materialize_batch,
    "multithread": multithread_materialize_batch,
}


def get_processor(name: str) -> Callable:
    """Look up a synchronous materialization strategy by name."""
    try:
        return PROCESSORS[name]
    except KeyError:
        raise ValueError(f"Unknown processor: {name}") from None


__all__ = [
    "PROCESSORS",
    "get_processor",
    "serial_materialize_batch",
    "multithread_materialize_batch",
    "materialize_batch_async",
]
