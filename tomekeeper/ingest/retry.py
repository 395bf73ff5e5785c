"""Bounded automatic retry around a single external call.

This is the same-invocation micro-retry used around the uploader and the
extractor. It is unrelated to the queue's manual retry, which re-runs the
whole per-item pipeline.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from tomekeeper.errors import RetryExhaustedError
from tomekeeper.utils.logging_config import get_logger

logger = get_logger("tomekeeper.ingest.retry")

T = TypeVar("T")


def _log_retry(label: str):
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "%s failed (attempt %d): %s. Retrying in %.1fs",
            label, retry_state.attempt_number, exc, delay,
            extra={"attempt": retry_state.attempt_number},
        )
    return before_sleep


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    timeout: Optional[float] = None,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``operation()`` up to ``max_attempts`` times.

    The delay after attempt *k* is ``k * base_delay`` with no jitter. When
    ``timeout`` is set each attempt is bounded by it and a timeout counts as
    a failed attempt.

    Raises:
        RetryExhaustedError: every attempt failed; carries the attempt count
            and the last error.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception_type(Exception),
        before_sleep=_log_retry(label),
        sleep=sleep,
    )
    try:
        async for attempt in retrying:
            with attempt:
                if timeout is None:
                    return await operation()
                async with asyncio.timeout(timeout):
                    return await operation()
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        raise RetryExhaustedError(label, exc.last_attempt.attempt_number, last_error) from last_error
    raise RetryExhaustedError(label, max_attempts, None)
