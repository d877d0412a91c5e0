# src/image_derivatives/core/error_handling.py

import functools
import logging
import time

import requests
from botocore.exceptions import ClientError as BotocoreClientError
from botocore.exceptions import EndpointConnectionError
from PIL import UnidentifiedImageError as PILUnidentifiedImageError

from .exceptions import (
    ImageDerivativesError,
    ImageProcessingError,
    S3Error,
    UndecodableImageError,
    UnreadableSourceError,
)

RETRYABLE_S3_ERROR_CODES = (
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "InternalError",
)
RETRYABLE_HTTP_STATUS_CODES = (429, 500, 502, 503, 504)


def with_error_handling(func):
    """
    A decorator to wrap functions with standardized error handling.

    Package errors propagate unchanged. Library errors are mapped onto the
    package hierarchy so callers only ever see ``ImageDerivativesError``.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except ImageDerivativesError:
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            if isinstance(e, BotocoreClientError):
                raise S3Error(f"S3 operation failed in {func.__name__}: {e}") from e
            if isinstance(e, PILUnidentifiedImageError):
                raise UndecodableImageError(f"Failed to identify image in {func.__name__}: {e}") from e
            if isinstance(e, requests.RequestException):
                raise UnreadableSourceError(f"HTTP fetch failed in {func.__name__}: {e}") from e
            if isinstance(e, (OSError, ValueError, KeyError)) and func.__name__ in ('process', 'apply_transformation'):
                raise ImageProcessingError(f"Image pipeline error in {func.__name__}: {e}") from e
            raise
    return wrapper


def _is_retryable(error: Exception) -> bool:
    cause = error.__cause__
    if isinstance(cause, BotocoreClientError):
        return cause.response.get('Error', {}).get('Code') in RETRYABLE_S3_ERROR_CODES
    if isinstance(cause, (EndpointConnectionError, requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(cause, requests.HTTPError) and cause.response is not None:
        return cause.response.status_code in RETRYABLE_HTTP_STATUS_CODES
    return False


def retry_fetch(max_attempts=3, initial_delay=1, backoff_factor=2):
    """
    Decorator to retry remote source fetches with exponential backoff.

    Only transient failures (throttling, connection errors, 5xx) are retried;
    anything else is raised on the first attempt.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + '.' + func.__name__)
            attempts = 0
            delay = initial_delay
            while True:
                try:
                    return func(*args, **kwargs)
                except UnreadableSourceError as e:
                    attempts += 1
                    if not _is_retryable(e):
                        logger.error(f"Fetch '{func.__name__}' failed with non-retryable error: {e}")
                        raise
                    if attempts >= max_attempts:
                        logger.error(
                            f"Fetch '{func.__name__}' failed after {max_attempts} attempts. Error: {e}"
                        )
                        raise
                    logger.info(
                        f"Fetch '{func.__name__}' failed. Attempt {attempts}/{max_attempts}. "
                        f"Retrying in {delay:.2f}s. Error: {e}"
                    )
                    time.sleep(delay)
                    delay *= backoff_factor
        return wrapper
    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """
    def __init__(self, operation_name="Batch Operation"):
        self.operation_name = operation_name
        self.errors = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                item_identifier = error_detail.get('item', 'Unknown item')
                error_message = error_detail.get('error', 'Unknown error')
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item '{item_identifier}': {error_message}"
                )
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif not self.errors:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Exceptions not reported through add_error propagate.
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item"):
        """
        Call this method within the 'with' block to report an error for a specific item.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): A string identifying the item that failed (e.g., output filename).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")
