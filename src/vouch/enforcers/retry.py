"""Local retry budget for vendor calls.

Vendor SDKs are built with their own retries turned off, so every call
gets exactly one budget here: transport failures and rate-limit or
server-side statuses are retried with capped exponential backoff and
full jitter; anything else propagates on the first failure.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

from vouch.enforcers.errors import is_transport_failure, status_of

# 529 is Anthropic's "overloaded" status.
RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504, 529})


class RetryOutcome(NamedTuple):
    """Result of a call that eventually succeeded."""

    result: Any
    retries: int
    error_types: list[str]


def is_transient(exc: Exception) -> bool:
    """True when *exc* is worth another attempt."""
    return is_transport_failure(exc) or status_of(exc) in RETRYABLE_STATUSES


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Upper bound of the sleep before retry number ``attempt + 1``."""
    return min(base_delay * 2**attempt, max_delay)


async def retry_with_backoff(
    call: Callable[[], Awaitable[Any]],
    max_retries: int = 2,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> RetryOutcome:
    """Await ``call()`` until it succeeds or the budget runs out.

    Args:
        call: Zero-argument callable returning a fresh awaitable per attempt.
        max_retries: Extra attempts after the first one.
        base_delay: Backoff before the first retry, doubled each time.
        max_delay: Cap on any single backoff.

    Returns:
        RetryOutcome with the result, how many retries were spent and the
        exception type names that caused them.

    Raises:
        Exception: The first non-transient error, or the last transient
            one once ``max_retries`` retries have failed.
    """
    error_types: list[str] = []
    attempt = 0
    while True:
        try:
            result = await call()
        except Exception as exc:
            if attempt >= max_retries or not is_transient(exc):
                raise
            error_types.append(type(exc).__name__)
            await asyncio.sleep(random.uniform(0, backoff_delay(attempt, base_delay, max_delay)))  # noqa: S311
            attempt += 1
            continue
        return RetryOutcome(result, attempt, error_types)
