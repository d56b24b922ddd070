"""Tests for retry logic with exponential backoff."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.utils.retry import (
    NON_RETRYABLE_STATUS_CODES,
    RETRYABLE_STATUS_CODES,
    _extract_status_code,
    _should_retry_exception,
    retry_with_backoff,
)


class APIError(Exception):
    """Exception carrying an HTTP status code, like google-genai's APIError."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def _failing(times: int, error: Exception, result: str = "ok"):
    """Callable that raises ``error`` ``times`` times, then returns ``result``."""
    calls = {"count": 0}

    def func():
        calls["count"] += 1
        if calls["count"] <= times:
            raise error
        return result

    return func, calls


class TestStatusCodes:

    def test_from_status_code_attribute(self):
        assert _extract_status_code(APIError("boom", 500)) == 500

    def test_from_code_attribute(self):
        error = Exception("quota")
        error.code = 429  # type: ignore[attr-defined]
        assert _extract_status_code(error) == 429

    def test_from_response(self):
        error = Exception("unavailable")
        error.response = MagicMock(status_code=503)  # type: ignore[attr-defined]
        assert _extract_status_code(error) == 503

    def test_missing(self):
        assert _extract_status_code(Exception("plain")) is None


class TestShouldRetry:

    @pytest.mark.parametrize("status_code", sorted(NON_RETRYABLE_STATUS_CODES))
    def test_client_errors_are_final(self, status_code):
        assert _should_retry_exception(APIError("client", status_code), (Exception,)) is False

    @pytest.mark.parametrize("status_code", sorted(RETRYABLE_STATUS_CODES))
    def test_transient_errors_retry(self, status_code):
        assert _should_retry_exception(APIError("transient", status_code), (Exception,)) is True

    @pytest.mark.parametrize("message", ["Read timed out", "Connection reset by peer", "network unreachable"])
    def test_network_errors_retry(self, message):
        assert _should_retry_exception(RuntimeError(message), (ValueError,)) is True

    def test_exception_type_filter(self):
        assert _should_retry_exception(ValueError("x"), (ValueError,)) is True
        assert _should_retry_exception(ValueError("x"), (TypeError,)) is False


class TestSyncRetry:

    def test_no_retry_on_success(self):
        func, calls = _failing(0, APIError("unused", 500))

        assert retry_with_backoff(max_retries=3)(func)() == "ok"
        assert calls["count"] == 1

    def test_recovers_after_transient_errors(self):
        func, calls = _failing(2, APIError("Server error", 500))

        with patch("app.utils.retry.time.sleep") as mock_sleep:
            assert retry_with_backoff(max_retries=3)(func)() == "ok"

        assert calls["count"] == 3
        assert mock_sleep.call_count == 2

    def test_gives_up_after_max_retries(self, caplog):
        func, calls = _failing(10, APIError("Server error", 500))

        with patch("app.utils.retry.time.sleep"), pytest.raises(APIError):
            retry_with_backoff(max_retries=2)(func)()

        assert calls["count"] == 3
        assert "attempt 1/2" in caplog.text
        assert "failed after 2 retries" in caplog.text

    def test_client_error_raised_immediately(self):
        func, calls = _failing(1, APIError("Bad request", 400))

        with pytest.raises(APIError):
            retry_with_backoff(max_retries=3)(func)()

        assert calls["count"] == 1

    def test_delays_double_with_jitter(self):
        func, _ = _failing(10, APIError("Server error", 503))

        with patch("app.utils.retry.time.sleep") as mock_sleep, \
                patch("app.utils.retry.random.random", return_value=0.5):
            with pytest.raises(APIError):
                retry_with_backoff(max_retries=3, base_delay=1.0, max_jitter=1.0)(func)()

        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.5, 2.5, 4.5]


class TestAsyncRetry:

    @pytest.mark.asyncio
    async def test_recovers_after_transient_errors(self):
        calls = {"count": 0}

        @retry_with_backoff(max_retries=3)
        async def generate():
            calls["count"] += 1
            if calls["count"] < 3:
                raise APIError("Rate limit", 429)
            return "text"

        with patch("app.utils.retry.asyncio.sleep", new_callable=AsyncMock):
            assert await generate() == "text"

        assert calls["count"] == 3

    @pytest.mark.asyncio
    async def test_backoff_does_not_block_the_event_loop(self):
        @retry_with_backoff(max_retries=3, base_delay=1.0, max_jitter=0.0)
        async def generate():
            raise APIError("Rate limit", 429)

        with patch("app.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep, \
                patch("app.utils.retry.time.sleep") as mock_time_sleep:
            with pytest.raises(APIError):
                await generate()

        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0, 4.0]
        mock_time_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_unprocessable_is_not_retried(self):
        calls = {"count": 0}

        @retry_with_backoff(max_retries=3)
        async def generate():
            calls["count"] += 1
            raise APIError("Unprocessable", 422)

        with pytest.raises(APIError):
            await generate()

        assert calls["count"] == 1

    def test_wrapper_keeps_function_metadata(self):
        @retry_with_backoff()
        async def generate_text():
            """Docstring."""

        assert generate_text.__name__ == "generate_text"
        assert generate_text.__doc__ == "Docstring."
