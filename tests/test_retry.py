"""Tests for rate-limit retry with exponential backoff."""

import pytest

from alloy_connector.errors.exceptions import ApiError, RateLimitError, RequestTimeoutError
from alloy_connector.transport.retry import RetryPolicy, with_retry


class _Recorder:
    """Fake sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _rate_limited() -> RateLimitError:
    return RateLimitError(code="HTTP_429", message="Too many requests", status_code=429)


class TestRetryPolicy:
    def test_delay_schedule(self):
        policy = RetryPolicy(max_retries=3, initial_delay_ms=1000, backoff_multiplier=2.0)
        assert [policy.delay_seconds(n) for n in range(3)] == [1.0, 2.0, 4.0]

    def test_rejects_negative_retries(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        sleep = _Recorder()
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            return "ok"

        assert await with_retry(op, sleep=sleep) == "ok"
        assert calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_persistent_429_makes_max_retries_plus_one_attempts(self):
        sleep = _Recorder()
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise _rate_limited()

        policy = RetryPolicy(max_retries=3, initial_delay_ms=100, backoff_multiplier=2.0)
        with pytest.raises(RateLimitError):
            await with_retry(op, policy, sleep=sleep)
        assert calls == 4
        assert sleep.delays == [0.1, 0.2, 0.4]

    @pytest.mark.asyncio
    async def test_recovers_after_429(self):
        sleep = _Recorder()
        outcomes = [_rate_limited(), _rate_limited(), "done"]

        async def op():
            result = outcomes.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        assert await with_retry(op, RetryPolicy(max_retries=3), sleep=sleep) == "done"
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ApiError(code="HTTP_500", message="boom", status_code=500),
            ApiError(code="HTTP_401", message="nope", status_code=401),
            RequestTimeoutError(),
            ValueError("unrelated"),
        ],
    )
    async def test_non_429_is_not_retried(self, error):
        sleep = _Recorder()
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise error

        with pytest.raises(type(error)) as exc_info:
            await with_retry(op, RetryPolicy(max_retries=3), sleep=sleep)
        assert exc_info.value is error
        assert calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_zero_retries_raises_immediately(self):
        sleep = _Recorder()

        async def op():
            raise _rate_limited()

        with pytest.raises(RateLimitError):
            await with_retry(op, RetryPolicy(max_retries=0), sleep=sleep)
        assert sleep.delays == []
