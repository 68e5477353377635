"""Tests for shared.retry."""
import pytest

from shared.retry import retry


class _Flaky:
    def __init__(self, failures, result="ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"boom {self.calls}")
        return self.result


def _recording_sleep():
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    return sleep, delays


@pytest.mark.asyncio
async def test_retry_fails_twice_then_succeeds():
    sleep, delays = _recording_sleep()
    op = _Flaky(failures=2)
    result = await retry(op, max_attempts=3, backoff_base_ms=500, sleep=sleep)
    assert result == "ok"
    assert op.calls == 3
    assert delays == [pytest.approx(0.5), pytest.approx(1.0)]


@pytest.mark.asyncio
async def test_retry_exhausted_raises_last_error():
    sleep, delays = _recording_sleep()
    op = _Flaky(failures=5)
    with pytest.raises(ConnectionError, match="boom 3"):
        await retry(op, max_attempts=3, backoff_base_ms=100, sleep=sleep)
    assert op.calls == 3
    # No sleep after the final attempt
    assert len(delays) == 2


@pytest.mark.asyncio
async def test_retry_first_success_does_not_sleep():
    sleep, delays = _recording_sleep()
    assert await retry(_Flaky(failures=0, result=42), sleep=sleep) == 42
    assert delays == []


@pytest.mark.asyncio
async def test_retry_on_predicate_stops_early():
    sleep, delays = _recording_sleep()
    op = _Flaky(failures=5)
    with pytest.raises(ConnectionError):
        await retry(op, max_attempts=3, retry_on=lambda e: False, sleep=sleep)
    assert op.calls == 1
    assert delays == []


@pytest.mark.asyncio
async def test_retry_rejects_zero_attempts():
    with pytest.raises(ValueError):
        await retry(_Flaky(failures=0), max_attempts=0)
