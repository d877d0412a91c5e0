"""Factory classes for creating configured service instances."""

from typing import Any, Optional, TextIO

import boto3
import requests

from .accessors import SourceAccessor
from .cache import CacheCoordinator, get_default_cache
from .observability import MetricsCollector, StructuredLogger
from .pipeline import PillowPipeline
from .protocols import CacheProtocol, LoggerProtocol
from .services import ImageDerivativeGenerator

# Conditional import for type checking S3 client
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client
else:
    S3Client = Any


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3Client:
        """Create S3 client with optional configuration."""
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore


class GeneratorFactory:
    """Factory for creating a fully wired derivative generator."""

    @staticmethod
    def create_generator(
        s3_client: Optional[S3Client] = None,
        http_session: Optional[requests.Session] = None,
        logger: Optional[LoggerProtocol] = None,
        cache: Optional[CacheProtocol] = None,
        log_level: Optional[str] = None,
        log_stream: Optional[TextIO] = None,
        enable_metrics: bool = True,
        fetch_timeout: float = 15.0,
        shared_cache: bool = False,
    ) -> ImageDerivativeGenerator:
        """
        Create a generator with default collaborators for anything not supplied.

        The S3 client is created lazily by the accessor on first ``s3://`` read,
        so callers that never touch S3 never need AWS credentials.
        """
        if logger is None:
            logger = StructuredLogger("image-derivatives.generator", log_level, log_stream)

        if cache is None:
            cache = get_default_cache() if shared_cache else CacheCoordinator()

        accessor = SourceAccessor(
            s3_client=s3_client, session=http_session, timeout=fetch_timeout
        )

        return ImageDerivativeGenerator(
            pipeline=PillowPipeline(),
            accessor=accessor,
            cache=cache,
            logger=logger,
            metrics_collector=MetricsCollector() if enable_metrics else None,
        )
