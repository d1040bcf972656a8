"""Tests for error handling middleware."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from dispatch_mcp.middleware.errors import ErrorHandlingMiddleware
from dispatch_mcp.services.dispatcher import JobValidationError


@pytest.fixture
def mock_context() -> MagicMock:
    """Create a mock middleware context."""
    context = MagicMock()
    context.method = "tools/call"
    context.message = MagicMock()
    context.message.name = "run_script"
    return context


@pytest.mark.asyncio
async def test_passes_through_success(mock_context: MagicMock) -> None:
    middleware = ErrorHandlingMiddleware()
    call_next = AsyncMock(return_value="success")

    result = await middleware.on_message(mock_context, call_next)

    assert result == "success"
    assert middleware.get_error_stats() == {}


@pytest.mark.asyncio
async def test_validation_errors_logged_as_warning(mock_context: MagicMock) -> None:
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger)
    call_next = AsyncMock(side_effect=JobValidationError("Unknown hosts: x"))

    with pytest.raises(JobValidationError):
        await middleware.on_message(mock_context, call_next)

    level = mock_logger.log.call_args.args[0]
    assert level == logging.WARNING


@pytest.mark.asyncio
async def test_unexpected_errors_logged_with_traceback(mock_context: MagicMock) -> None:
    mock_logger = MagicMock()
    middleware = ErrorHandlingMiddleware(logger=mock_logger, include_traceback=True)
    call_next = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await middleware.on_message(mock_context, call_next)

    args = mock_logger.log.call_args.args
    assert args[0] == logging.ERROR
    assert "RuntimeError" in args
    assert "Traceback" in args[-1]


@pytest.mark.asyncio
async def test_tracks_error_stats(mock_context: MagicMock) -> None:
    middleware = ErrorHandlingMiddleware()
    call_next = AsyncMock(side_effect=[KeyError("a"), KeyError("b"), OSError("c")])

    for _ in range(3):
        with pytest.raises(Exception):
            await middleware.on_message(mock_context, call_next)

    assert middleware.get_error_stats() == {"KeyError": 2, "OSError": 1}


@pytest.mark.asyncio
async def test_calls_error_callback(mock_context: MagicMock) -> None:
    callback = MagicMock()
    middleware = ErrorHandlingMiddleware(error_callback=callback)
    error = ValueError("bad")

    with pytest.raises(ValueError):
        await middleware.on_message(mock_context, AsyncMock(side_effect=error))

    callback.assert_called_once_with(error, mock_context)


@pytest.mark.asyncio
async def test_failing_callback_does_not_mask_error(mock_context: MagicMock) -> None:
    mock_logger = MagicMock()
    callback = MagicMock(side_effect=RuntimeError("callback broke"))
    middleware = ErrorHandlingMiddleware(logger=mock_logger, error_callback=callback)

    with pytest.raises(ValueError, match="original"):
        await middleware.on_message(mock_context, AsyncMock(side_effect=ValueError("original")))

    mock_logger.warning.assert_called_once()
