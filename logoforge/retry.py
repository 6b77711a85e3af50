"""
retry.py — Bounded exponential-backoff retry for async AI calls.

Usage:
  result = await with_retry(lambda: ai.generate(...), max_attempts=3, base_delay=1.0)

Tests pass their own `sleep` so no real time passes.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Optional, TypeVar

from google.genai import errors as genai_errors

from .config import MAX_RETRY_DELAY
from .errors import LogoForgeError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

# Input problems never get better on a second try
_NON_RETRYABLE_MESSAGE = re.compile(
    r"required field missing|invalid input|must be|cannot be empty", re.IGNORECASE
)


def is_retryable(exc: BaseException) -> bool:
    """True if a repeat of the same call has a chance of succeeding."""
    if isinstance(exc, LogoForgeError):
        return exc.retryable
    if isinstance(exc, genai_errors.ClientError):
        # 4xx is the caller's fault, except timeouts and rate limits
        return getattr(exc, "code", None) in (408, 429)
    if _NON_RETRYABLE_MESSAGE.search(str(exc)):
        return False
    return True


def backoff_delay(
    attempt: int,
    base_delay: float,
    backoff_factor: float = 2.0,
    max_delay: float = MAX_RETRY_DELAY,
) -> float:
    """Delay before retry number `attempt` (1-based), capped at max_delay."""
    return min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    max_delay: float = MAX_RETRY_DELAY,
    backoff_factor: float = 2.0,
    sleep: Optional[SleepFn] = None,
    label: str = "operation",
) -> T:
    """
    Run `operation` until it succeeds or the attempt budget runs out.

    Args:
        operation:      Zero-argument coroutine function
        max_attempts:   Total calls allowed (>= 1)
        base_delay:     Seconds before the first retry (>= 0)
        max_delay:      Per-retry ceiling in seconds
        backoff_factor: Multiplier applied per retry
        sleep:          Awaitable sleep, defaults to asyncio.sleep
        label:          Name used in logs and the exhaustion message

    Returns:
        Whatever `operation` returns.

    Raises:
        The original error when it is non-retryable (after exactly one call),
        RetryExhaustedError wrapping the last error otherwise.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if base_delay < 0:
        raise ValueError("base_delay must be >= 0")

    sleep = sleep or asyncio.sleep
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e
            if attempt == max_attempts:
                break
            delay = backoff_delay(attempt, base_delay, backoff_factor, max_delay)
            logger.warning(
                f"{label} failed (attempt {attempt}/{max_attempts}): {e} — retrying in {delay:.1f}s"
            )
            await sleep(delay)

    raise RetryExhaustedError(
        f"{label} failed after {max_attempts} attempts: {last_error}",
        attempts=max_attempts,
        last_error=last_error,
    ) from last_error
