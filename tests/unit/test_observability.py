from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from src.core.observability import (
    clear_correlation_id,
    debug_wrapper,
    set_correlation_id,
    trace_adapter,
)


@pytest.mark.asyncio
async def test_debug_wrapper_returns_async_result() -> None:
    """The wrapped coroutine's value reaches the caller unchanged."""
    set_correlation_id("test-cid-1234")

    @debug_wrapper(capture_result=True, log_level="INFO")
    async def _foo(x: int) -> dict[str, Any]:
        return {"x": x}

    mock_logger = MagicMock()
    try:
        with patch("src.core.observability.logger", mock_logger):
            result = await _foo(3)
    finally:
        clear_correlation_id()

    assert result == {"x": 3}
    messages = [c.args[0] for c in mock_logger.info.call_args_list]
    assert any(m.startswith("Executing function") for m in messages)
    assert any(m.startswith("Successfully executed") for m in messages)
    assert "execution_id" in mock_logger.info.call_args.kwargs


def test_debug_wrapper_reraises_and_logs_errors() -> None:
    @debug_wrapper(log_level="DEBUG")
    def _boom() -> None:
        raise RuntimeError("pool exhausted")

    mock_logger = MagicMock()
    with patch("src.core.observability.logger", mock_logger), pytest.raises(RuntimeError):
        _boom()

    mock_logger.error.assert_called_once()
    assert mock_logger.error.call_args.kwargs["error_type"] == "RuntimeError"


def test_sensitive_kwargs_are_redacted() -> None:
    @debug_wrapper(capture_result=False, log_level="INFO")
    def _connect(database_url: str, pool_size: int) -> bool:
        return True

    mock_logger = MagicMock()
    with patch("src.core.observability.logger", mock_logger):
        assert _connect(database_url="postgresql://user:hunter2@db/crewstats", pool_size=5)

    kwargs = mock_logger.info.call_args_list[0].kwargs["kwargs"]
    assert "hunter2" not in str(kwargs["database_url"])
    assert kwargs["pool_size"] == 5


@pytest.mark.asyncio
async def test_trace_adapter_tags_layer() -> None:
    @trace_adapter
    async def _load() -> int:
        return 1

    mock_logger = MagicMock()
    with patch("src.core.observability.logger", mock_logger):
        assert await _load() == 1

    assert mock_logger.debug.call_args_list[0].kwargs["layer"] == "adapter"
