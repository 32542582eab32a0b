"""Tests for retry logic with exponential backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

import lab_report_mcp.config as cfg_mod
from lab_report_mcp.errors import QUOTA_MESSAGE, CollaboratorError
from lab_report_mcp.retry import _is_retryable, with_retry


class TestIsRetryable:
    """Tests for _is_retryable pattern matching."""

    @pytest.mark.parametrize("msg", [
        "429 Too Many Requests",
        "Quota exceeded for this project",
        "RESOURCE_EXHAUSTED: rate limit",
        "Request timeout after 30s",
        "503 Service Temporarily Unavailable",
        "service unavailable, please retry",
    ])
    def test_is_retryable_patterns(self, msg: str):
        """Each known transient pattern should be recognized as retryable."""
        assert _is_retryable(Exception(msg)) is True

    @pytest.mark.parametrize("msg", [
        "Invalid input: missing required field",
        "Authentication failed",
        "400 Bad Request",
        "Permission denied",
        "Not found",
    ])
    def test_is_retryable_false_for_unknown(self, msg: str):
        """Non-transient errors should not be retryable."""
        assert _is_retryable(Exception(msg)) is False

    def test_quota_flag_is_retryable(self):
        assert _is_retryable(CollaboratorError("rate limited", is_quota=True)) is True


class TestWithRetry:
    """Tests for with_retry exponential backoff behavior."""

    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_success_first_attempt(self, mock_sleep):
        factory = AsyncMock(return_value="ok")

        result = await with_retry(factory)

        assert result == "ok"
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_succeeds_after_transient_error(self, mock_sleep):
        """Should retry on 429 and succeed on the second attempt."""
        factory = AsyncMock(side_effect=[Exception("429 rate limit"), "recovered"])

        result = await with_retry(factory)

        assert result == "recovered"
        assert factory.await_count == 2
        mock_sleep.assert_awaited_once()

    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_quota_exhaustion_surfaces_quota_flag(self, mock_sleep):
        """GIVEN quota errors on three attempts and success on a fourth THEN the call fails as quota."""
        factory = AsyncMock(
            side_effect=[
                Exception("429 RESOURCE_EXHAUSTED"),
                Exception("429 RESOURCE_EXHAUSTED"),
                Exception("429 RESOURCE_EXHAUSTED"),
                "too late",
            ]
        )

        with pytest.raises(CollaboratorError) as exc_info:
            await with_retry(factory)

        assert exc_info.value.is_quota is True
        assert str(exc_info.value) == QUOTA_MESSAGE
        assert factory.await_count == 3
        assert mock_sleep.await_count == 2

    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_exhausted_non_quota_reraises_original(self, mock_sleep):
        factory = AsyncMock(side_effect=Exception("503 service unavailable"))

        with pytest.raises(Exception, match="503 service unavailable"):
            await with_retry(factory)

        assert factory.await_count == 3

    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_non_retryable_raises_immediately(self, mock_sleep):
        factory = AsyncMock(side_effect=ValueError("invalid input"))

        with pytest.raises(ValueError, match="invalid input"):
            await with_retry(factory)

        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("lab_report_mcp.retry.random.random", return_value=0.0)
    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_backoff_delays_increase(self, mock_sleep, _mock_random):
        """Delays should follow exponential backoff: base*2^attempt."""
        factory = AsyncMock(side_effect=[Exception("429"), Exception("429"), "ok"])

        result = await with_retry(factory)

        assert result == "ok"
        delays = [call.args[0] for call in mock_sleep.await_args_list]
        assert delays == [1.0, 2.0]

    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_respects_config_max_attempts(self, mock_sleep, monkeypatch):
        """Setting max_attempts=1 means no retry at all."""
        monkeypatch.setenv("LAB_REPORT_RETRY_MAX_ATTEMPTS", "1")
        cfg_mod._config = None

        factory = AsyncMock(side_effect=Exception("503"))

        with pytest.raises(Exception, match="503"):
            await with_retry(factory)

        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("lab_report_mcp.retry.random.random", return_value=0.0)
    @patch("lab_report_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_respects_config_delays(self, mock_sleep, _mock_random, monkeypatch):
        monkeypatch.setenv("LAB_REPORT_RETRY_BASE_DELAY", "0.5")
        monkeypatch.setenv("LAB_REPORT_RETRY_MAX_DELAY", "1.5")
        monkeypatch.setenv("LAB_REPORT_RETRY_MAX_ATTEMPTS", "4")
        cfg_mod._config = None

        factory = AsyncMock(side_effect=[Exception("503"), Exception("503"), Exception("503"), "ok"])

        result = await with_retry(factory)

        assert result == "ok"
        delays = [call.args[0] for call in mock_sleep.await_args_list]
        assert delays == [0.5, 1.0, 1.5]
