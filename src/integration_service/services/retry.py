"""Bounded retry with capped backoff for async operations."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from integration_service.core.exceptions import RetryExhaustedError

T = TypeVar("T")

# (attempt, max_delay_millis) -> delay in milliseconds before the next attempt
BackoffFn = Callable[[int, int], float]
FailureHook = Callable[[int, Exception], None]
RetryablePredicate = Callable[[int, Exception], bool]

_BASE_DELAY_MILLIS = 500


def exponential_backoff(attempt: int, max_delay_millis: int) -> int:
    # attempt is 1-based: 500, 1000, 2000, ... capped at max_delay_millis
    exponent = min(max(attempt, 1) - 1, 16)
    return min(max_delay_millis, _BASE_DELAY_MILLIS * 2**exponent)


def _always(_attempt: int, _exc: Exception) -> bool:
    return True


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    max_delay_millis: int,
    is_retryable: RetryablePredicate = _always,
    on_failure: FailureHook | None = None,
    backoff: BackoffFn = exponential_backoff,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    ``on_failure`` is invoked after every failed attempt. A failure rejected by
    ``is_retryable`` is re-raised as is; running out of attempts raises
    :class:`RetryExhaustedError` carrying the last error. The wait between
    attempts never exceeds ``max_delay_millis``.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if on_failure is not None:
                on_failure(attempt, exc)
            if not is_retryable(attempt, exc):
                raise
            if attempt >= max_attempts:
                raise RetryExhaustedError(attempt, exc) from exc
            delay_ms = min(max(backoff(attempt, max_delay_millis), 0), max_delay_millis)
            await sleep(delay_ms / 1000)
