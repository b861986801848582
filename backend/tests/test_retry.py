"""Tests for the async retry decorator."""

import pytest

from utils.retry import retry_with_backoff


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []

    async def _sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("utils.retry.asyncio.sleep", _sleep)
    return delays


class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self, no_sleep):
        calls = []

        @retry_with_backoff(max_attempts=3, base_delay=1.0)
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        assert await flaky() == "ok"
        assert len(calls) == 3
        assert no_sleep == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):
        @retry_with_backoff(max_attempts=2, base_delay=0.1)
        async def broken():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await broken()

    @pytest.mark.asyncio
    async def test_non_listed_exceptions_are_not_retried(self):
        calls = []

        @retry_with_backoff(max_attempts=5, retry_on=(ConnectionError,))
        async def bad_input():
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await bad_input()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, no_sleep):
        @retry_with_backoff(max_attempts=4, base_delay=10.0, max_delay=15.0)
        async def broken():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await broken()
        assert no_sleep == [10.0, 15.0, 15.0]
