"""Tests for vouch.enforcers.retry -- the per-call retry budget."""

from __future__ import annotations

import pytest

from vouch.enforcers.retry import (
    RETRYABLE_STATUSES,
    RetryOutcome,
    backoff_delay,
    is_transient,
    retry_with_backoff,
)


class APIConnectionError(Exception):
    """Same class name as the SDKs' transport error."""


def _status_error(status: int, attr: str = "status_code") -> Exception:
    exc = Exception(f"status {status}")
    setattr(exc, attr, status)
    return exc


class Flaky:
    """Callable raising the queued errors in order, then returning 'ok'."""

    def __init__(self, *errors: Exception):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestIsTransient:
    @pytest.mark.parametrize(
        "exc",
        [TimeoutError("slow"), ConnectionError("refused"), APIConnectionError("reset")],
    )
    def test_transport_failures(self, exc):
        assert is_transient(exc) is True

    @pytest.mark.parametrize("status", sorted(RETRYABLE_STATUSES))
    def test_retryable_statuses(self, status):
        assert is_transient(_status_error(status)) is True

    def test_status_attribute_name(self):
        assert is_transient(_status_error(503, attr="status")) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors(self, status):
        assert is_transient(_status_error(status)) is False

    def test_plain_exception(self):
        assert is_transient(ValueError("bad input")) is False


class TestBackoffDelay:
    def test_doubles(self):
        assert [backoff_delay(n, 0.5, 30) for n in range(4)] == [0.5, 1.0, 2.0, 4.0]

    def test_capped(self):
        assert backoff_delay(10, 1.0, 30.0) == 30.0


class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_first_call_succeeds(self):
        call = Flaky()

        outcome = await retry_with_backoff(call, max_retries=3, base_delay=0.001)

        assert outcome == RetryOutcome("ok", 0, [])
        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_errors(self):
        call = Flaky(TimeoutError("slow"), _status_error(529))

        result, retries, error_types = await retry_with_backoff(call, max_retries=2, base_delay=0.001)

        assert result == "ok"
        assert retries == 2
        assert error_types == ["TimeoutError", "Exception"]

    @pytest.mark.asyncio
    async def test_non_transient_is_not_retried(self):
        call = Flaky(ValueError("bad input"))

        with pytest.raises(ValueError, match="bad input"):
            await retry_with_backoff(call, max_retries=3, base_delay=0.001)

        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_budget_exhausted_raises_last_error(self):
        call = Flaky(*(TimeoutError(f"attempt {n}") for n in range(1, 5)))

        with pytest.raises(TimeoutError, match="attempt 3"):
            await retry_with_backoff(call, max_retries=2, base_delay=0.001)

        assert call.calls == 3

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        call = Flaky(ConnectionError("down"))

        with pytest.raises(ConnectionError):
            await retry_with_backoff(call, max_retries=0, base_delay=0.001)

        assert call.calls == 1
