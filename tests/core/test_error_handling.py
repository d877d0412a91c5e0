# tests/core/test_error_handling.py

import logging

import pytest
from unittest import mock

import requests
from botocore.exceptions import ClientError as BotocoreClientError
from PIL import UnidentifiedImageError as PILUnidentifiedImageError

# Custom exceptions from the application
from image_derivatives.core.exceptions import (
    ImageDerivativesError,
    ImageProcessingError,
    InvalidWidthError,
    S3Error,
    UndecodableImageError,
    UnreadableSourceError,
)

# Decorators and context manager to be tested
from image_derivatives.core.error_handling import (
    with_error_handling,
    retry_fetch,
    BatchOperationContextManager,
)


def _http_error(status):
    response = requests.Response()
    response.status_code = status
    return requests.HTTPError(f"{status} Server Error", response=response)


def _client_error(code):
    return BotocoreClientError(
        error_response={'Error': {'Code': code, 'Message': 'Details'}},
        operation_name='GetObject'
    )


# --- Tests for @with_error_handling decorator ---

@pytest.fixture
def mock_logger():
    """Fixture to mock the logger used by the decorators."""
    # The decorators resolve loggers through error_handling's own logging reference
    with mock.patch('image_derivatives.core.error_handling.logging') as mock_logging:
        mock_log_instance = mock.Mock()
        mock_logging.getLogger.return_value = mock_log_instance
        yield mock_log_instance


def test_mock_logger_leaves_global_logging_intact(mock_logger):
    """Test that only error_handling sees the mocked logger."""
    assert isinstance(logging.getLogger("image_derivatives"), logging.Logger)
    assert logging.getLogger("image_derivatives") is not mock_logger


def test_with_error_handling_logs_error(mock_logger):
    """Test that @with_error_handling logs unmapped errors with a traceback."""
    @with_error_handling
    def func_raising_error():
        raise ValueError("Original error")

    with pytest.raises(ValueError):
        func_raising_error()

    mock_logger.error.assert_called_once()
    args, kwargs = mock_logger.error.call_args
    assert kwargs.get('exc_info') is True


def test_with_error_handling_passes_package_errors(mock_logger):
    """Test that package errors propagate unchanged and are not logged again."""
    @with_error_handling
    def func_raising_package_error():
        raise InvalidWidthError("bad width")

    with pytest.raises(InvalidWidthError):
        func_raising_package_error()

    mock_logger.error.assert_not_called()


def test_with_error_handling_wraps_botocore_error(mock_logger):
    """Test @with_error_handling wrapping BotocoreClientError into S3Error."""
    @with_error_handling
    def func_raising_s3_client_error():
        raise _client_error('NoSuchKey')

    with pytest.raises(S3Error) as excinfo:
        func_raising_s3_client_error()

    assert "S3 operation failed" in str(excinfo.value)
    assert isinstance(excinfo.value, UnreadableSourceError)
    assert isinstance(excinfo.value.__cause__, BotocoreClientError)
    mock_logger.error.assert_called_once()


def test_with_error_handling_wraps_pil_error(mock_logger):
    """Test @with_error_handling wrapping PILUnidentifiedImageError into UndecodableImageError."""
    @with_error_handling
    def func_raising_pil_error():
        raise PILUnidentifiedImageError("Cannot identify image file")

    with pytest.raises(UndecodableImageError) as excinfo:
        func_raising_pil_error()

    assert "Failed to identify image" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, PILUnidentifiedImageError)


def test_with_error_handling_wraps_requests_error(mock_logger):
    """Test @with_error_handling wrapping requests errors into UnreadableSourceError."""
    @with_error_handling
    def fetch():
        raise requests.ConnectionError("connection refused")

    with pytest.raises(UnreadableSourceError) as excinfo:
        fetch()

    assert "HTTP fetch failed" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


@pytest.mark.parametrize("error", [ValueError("bad"), OSError("broken"), KeyError("ENCODER")])
def test_with_error_handling_pipeline_errors_for_process(mock_logger, error):
    """Test @with_error_handling for pixel pipeline errors in 'process'."""
    # The decorator's logic specifically checks func.__name__
    @with_error_handling
    def process():
        raise error

    with pytest.raises(ImageProcessingError) as excinfo:
        process()

    assert "Image pipeline error" in str(excinfo.value)
    assert excinfo.value.__cause__ is error


def test_with_error_handling_value_error_for_apply_transformation(mock_logger):
    """Test @with_error_handling for ValueError in 'apply_transformation'."""
    @with_error_handling
    def apply_transformation():
        raise ValueError("Unknown transformation")

    with pytest.raises(ImageProcessingError):
        apply_transformation()


def test_with_error_handling_reraises_unmapped_exception(mock_logger):
    """Test that unmapped exceptions are re-raised by default."""
    class CustomNonMappedError(Exception):
        pass

    @with_error_handling
    def func_raising_unmapped_error():
        raise CustomNonMappedError("This one is not mapped.")

    with pytest.raises(CustomNonMappedError):
        func_raising_unmapped_error()

    # It should still be logged
    mock_logger.error.assert_called_once()
    args, kwargs = mock_logger.error.call_args
    assert "This one is not mapped." in args[0]
    assert kwargs.get('exc_info') is True


def test_package_errors_share_a_base():
    """Test that every mapped error is catchable as ImageDerivativesError."""
    for error_class in (S3Error, UndecodableImageError, UnreadableSourceError, ImageProcessingError):
        assert issubclass(error_class, ImageDerivativesError)


# --- Tests for @retry_fetch decorator ---

def test_retry_fetch_success_on_first_attempt(mock_logger):
    """Test @retry_fetch succeeds immediately if no error."""
    @retry_fetch(max_attempts=3, initial_delay=0.01)
    def func_succeeds():
        return "success"

    assert func_succeeds() == "success"
    mock_logger.info.assert_not_called()
    mock_logger.error.assert_not_called()


@mock.patch('time.sleep', return_value=None)
def test_retry_fetch_success_with_retryable_botocore_error(mock_time_sleep, mock_logger):
    """Test success after retries with a throttling BotocoreClientError."""
    throttled = S3Error("Failed due to throttling")
    throttled.__cause__ = _client_error('ThrottlingException')
    mock_fetch = mock.Mock(side_effect=[throttled, "success"])

    @retry_fetch(max_attempts=3, initial_delay=0.01)
    def func_with_retryable_error():
        return mock_fetch()

    assert func_with_retryable_error() == "success"
    assert mock_fetch.call_count == 2
    assert mock_time_sleep.call_count == 1
    mock_logger.info.assert_called_once_with(
        "Fetch 'func_with_retryable_error' failed. Attempt 1/3. "
        "Retrying in 0.01s. Error: Failed due to throttling"
    )


@mock.patch('time.sleep', return_value=None)
def test_retry_fetch_backs_off_on_server_errors(mock_time_sleep, mock_logger):
    """Test exponential backoff for 5xx responses until attempts run out."""
    unavailable = UnreadableSourceError("503 Server Error")
    unavailable.__cause__ = _http_error(503)
    mock_fetch = mock.Mock(side_effect=unavailable)

    @retry_fetch(max_attempts=3, initial_delay=1, backoff_factor=2)
    def fetch():
        return mock_fetch()

    with pytest.raises(UnreadableSourceError):
        fetch()

    assert mock_fetch.call_count == 3
    assert [c.args[0] for c in mock_time_sleep.call_args_list] == [1, 2]
    mock_logger.error.assert_called_once_with(
        "Fetch 'fetch' failed after 3 attempts. Error: 503 Server Error"
    )


@mock.patch('time.sleep', return_value=None)
@pytest.mark.parametrize("cause", [_client_error('AccessDenied'), _http_error(404), None])
def test_retry_fetch_non_retryable_errors(mock_time_sleep, mock_logger, cause):
    """Test @retry_fetch gives up at once on permanent failures."""
    failure = UnreadableSourceError("permanent")
    failure.__cause__ = cause
    mock_fetch = mock.Mock(side_effect=failure)

    @retry_fetch(max_attempts=3, initial_delay=0.01)
    def fetch():
        return mock_fetch()

    with pytest.raises(UnreadableSourceError):
        fetch()

    assert mock_fetch.call_count == 1
    mock_time_sleep.assert_not_called()


@mock.patch('time.sleep', return_value=None)
def test_retry_fetch_other_errors_not_retried(mock_time_sleep, mock_logger):
    """Test @retry_fetch does not retry errors other than unreadable sources."""
    mock_fetch = mock.Mock(side_effect=UndecodableImageError("not an image"))

    @retry_fetch(max_attempts=3, initial_delay=0.01)
    def fetch():
        return mock_fetch()

    with pytest.raises(UndecodableImageError):
        fetch()

    assert mock_fetch.call_count == 1
    mock_time_sleep.assert_not_called()


# --- Tests for BatchOperationContextManager ---

def test_batch_manager_no_errors(mock_logger):
    """Test BatchOperationContextManager when no errors are reported."""
    with BatchOperationContextManager(operation_name="TestOp Success"):
        pass

    mock_logger.info.assert_any_call("Starting TestOp Success.")
    mock_logger.info.assert_any_call("TestOp Success completed successfully.")
    mock_logger.warning.assert_not_called()


def test_batch_manager_with_errors_added(mock_logger):
    """Test BatchOperationContextManager collecting and logging errors via add_error."""
    with BatchOperationContextManager(operation_name="TestOp Errors") as manager:
        manager.add_error(error_message="First item failed", item_identifier="item1")
        manager.add_error(error_message="Second item failed", item_identifier="item2")

    assert manager.errors == [
        {"item": "item1", "error": "First item failed"},
        {"item": "item2", "error": "Second item failed"},
    ]
    mock_logger.warning.assert_any_call("TestOp Errors completed with 2 error(s).")
    mock_logger.error.assert_any_call("  Error 1/2 for item 'item1': First item failed")
    mock_logger.error.assert_any_call("  Error 2/2 for item 'item2': Second item failed")
    mock_logger.debug.assert_any_call("Error added for item 'item1' in TestOp Errors: First item failed")


def test_batch_manager_handles_exception_in_context(mock_logger):
    """Test BatchOperationContextManager when an unhandled exception occurs within the context."""
    class MyContextError(Exception):
        pass

    with pytest.raises(MyContextError):
        with BatchOperationContextManager(operation_name="TestOp Unhandled") as manager:
            manager.add_error("This error was added", "item0")
            raise MyContextError("Something bad happened inside with block")

    unhandled = [
        call for call in mock_logger.error.call_args_list
        if "TestOp Unhandled failed due to an unhandled exception" in call[0][0]
    ]
    assert len(unhandled) == 1
    assert isinstance(unhandled[0][1]['exc_info'][1], MyContextError)
    mock_logger.warning.assert_any_call("TestOp Unhandled completed with 1 error(s).")
    mock_logger.error.assert_any_call("  Error 1/1 for item 'item0': This error was added")
