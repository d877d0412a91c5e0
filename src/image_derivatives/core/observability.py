"""Correlated logging and per-output timing for generate calls."""

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, TextIO

from .logging_config import setup_logger


@dataclass
class LogContext:
    """Correlation data carried through every log line of one generate call."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    source: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})


class StructuredLogger:
    """
    ``LoggerProtocol`` implementation on top of a ``setup_logger`` logger.

    Lines read ``[operation] [correlation_id] message (key=value, ...)``.
    """

    def __init__(self, name: str, level: Optional[str] = None, stream: Optional[TextIO] = None):
        self._logger = setup_logger(name, level=level, stream=stream)

    @property
    def name(self) -> str:
        return self._logger.name

    @staticmethod
    def render(message: str, context: Optional[LogContext] = None, **kwargs) -> str:
        if context is None:
            return message

        prefix = f"[{context.operation}] " if context.operation else ""
        fields = dict(context.metadata)
        if context.source:
            fields["source"] = context.source
        fields.update(kwargs)
        suffix = f" ({', '.join(f'{k}={v}' for k, v in fields.items())})" if fields else ""
        return f"{prefix}[{context.correlation_id}] {message}{suffix}"

    def _log(self, level: int, message: str, context: Optional[LogContext], **kwargs):
        if self._logger.isEnabledFor(level):
            # Attribute the record to the caller of debug()/info()/...
            self._logger.log(level, self.render(message, context, **kwargs), stacklevel=3)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.ERROR, message, context, **kwargs)


@dataclass
class PerformanceMetrics:
    """Timing of one materialization."""

    operation: str
    start_time: float
    end_time: float
    success: bool
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class MetricsCollector:
    """In-memory store of ``PerformanceMetrics``."""

    def __init__(self):
        self._metrics: List[PerformanceMetrics] = []

    def record_metric(self, metric: PerformanceMetrics):
        self._metrics.append(metric)

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        return [m for m in self._metrics if operation is None or m.operation == operation]

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Counts and durations for the recorded metrics, empty when none match."""
        metrics = self.get_metrics(operation)
        if not metrics:
            return {}

        durations = [m.duration for m in metrics]
        successful = sum(1 for m in metrics if m.success)
        return {
            "total_operations": len(metrics),
            "successful_operations": successful,
            "failed_operations": len(metrics) - successful,
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }


def timed_operation(
    operation_name: str,
    logger: Optional[StructuredLogger] = None,
    metrics_collector: Optional[MetricsCollector] = None,
    context: Optional[LogContext] = None,
):
    """Time the wrapped call; log its outcome and record a metric."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            operation_context = (context or LogContext()).with_operation(operation_name)
            start_time = time.time()
            error_message = None
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error_message = str(e)
                raise
            finally:
                end_time = time.time()
                success = error_message is None
                if logger is not None:
                    if success:
                        logger.debug(
                            f"Completed {operation_name}",
                            operation_context,
                            duration_ms=round((end_time - start_time) * 1000, 2),
                        )
                    else:
                        logger.error(f"Failed {operation_name}: {error_message}", operation_context)
                if metrics_collector is not None:
                    metrics_collector.record_metric(
                        PerformanceMetrics(
                            operation=operation_name,
                            start_time=start_time,
                            end_time=end_time,
                            success=success,
                            error_message=error_message,
                            metadata=dict(operation_context.metadata),
                        )
                    )

        return wrapper

    return decorator
