"""
Retry policy for quote requests.

Transient transport failures and rate-limit/5xx responses are retried with
exponential backoff plus random jitter; anything else propagates at once.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

logger = logging.getLogger("agent_trader.resilience")

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass
class RetryConfig:
    """How many times, and how patiently, to retry a quote request."""

    max_attempts: int = 3
    base_delay_sec: float = 0.5
    max_delay_sec: float = 10.0
    jitter_factor: float = 0.5

    retryable_exceptions: tuple = field(default_factory=lambda: (
        ConnectionError,
        TimeoutError,
        asyncio.TimeoutError,
        httpx.TransportError,
    ))


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


def jittered_backoff(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter_factor: float = 0.5,
) -> float:
    """
    Seconds to wait before retry number attempt + 1.

    base_delay doubles per attempt up to max_delay, then moves by up to
    +/- jitter_factor of itself so concurrent agents do not retry in lockstep.
    """
    delay = min(base_delay * (2 ** attempt), max_delay)
    spread = delay * jitter_factor
    delay += random.uniform(-spread, spread)
    return min(max(0.0, delay), max_delay)


async def with_retry(
    func: Callable[[], Awaitable[T]],
    label: str = "request",
    config: Optional[RetryConfig] = None,
) -> T:
    """Await func(), retrying config.retryable_exceptions up to config.max_attempts times."""
    config = config or RetryConfig()
    attempt = 0

    while True:
        try:
            return await func()
        except config.retryable_exceptions as e:
            attempt += 1
            if attempt >= config.max_attempts:
                logger.error(f"{label} failed after {attempt} attempts: {e}")
                raise
            delay = jittered_backoff(
                attempt - 1,
                config.base_delay_sec,
                config.max_delay_sec,
                config.jitter_factor,
            )
            logger.warning(f"{label} attempt {attempt}/{config.max_attempts} failed ({e}); retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
