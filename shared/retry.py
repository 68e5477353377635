"""Exponential-backoff retry for outbound calls."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    backoff_base_ms: float = 500,
    retry_on: Optional[Callable[[BaseException], bool]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await `operation` up to `max_attempts` times.

    After failed attempt n (except the last) waits backoff_base_ms * 2**(n-1)
    milliseconds. No jitter. The last error is re-raised once attempts are
    exhausted, or immediately when `retry_on` rejects it.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            if retry_on is not None and not retry_on(e):
                raise
            if attempt < max_attempts:
                delay_ms = backoff_base_ms * (2 ** (attempt - 1))
                logger.debug(
                    "Retrying after error",
                    extra={"attempt": attempt, "delay_ms": delay_ms, "error_type": type(e).__name__},
                )
                await sleep(delay_ms / 1000.0)

    raise last_error
