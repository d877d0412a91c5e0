"""Protocol definitions for dependency injection and testability."""

from typing import Any, Callable, ContextManager, Dict, Optional, Protocol

from .models import OutputRecord


class PixelPipelineProtocol(Protocol):
    """Protocol for the external resize/encode engine."""

    def process(
        self,
        source_bytes: bytes,
        width: int,
        format_id: str,
        encoding_options: Optional[Dict[str, Any]] = None,
        transform: Optional[Callable[[Any], Any]] = None,
    ) -> bytes:
        """Resize and encode source bytes."""
        ...

    def read_dimensions(self, data: bytes) -> Any:
        """Width and height of encoded bytes."""
        ...


class CacheProtocol(Protocol):
    """Protocol for the cache coordinator."""

    def lookup(self, key: Any) -> Optional[OutputRecord]:
        """Return a stored record or None on a miss."""
        ...

    def store(self, key: Any, record: OutputRecord) -> None:
        """Store a record under key."""
        ...

    def key_lock(self, key: Any) -> ContextManager[None]:
        """Serialize materialization for one key."""
        ...


class SourceAccessorProtocol(Protocol):
    """Protocol for filesystem and network access."""

    def read_bytes(self, location: str) -> bytes:
        """Read all bytes of a path or URL."""
        ...

    def copy_file(self, src_path: str, dest_path: str) -> None:
        """Copy a file byte-for-byte."""
        ...

    def write_bytes(self, dest_path: str, data: bytes) -> None:
        """Write bytes to a path."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
