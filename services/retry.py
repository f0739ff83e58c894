#!/usr/bin/env python3
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from constants import DEFAULT_RETRIES, DEFAULT_RETRY_BACKOFF
from errors import ProviderError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to call a provider and how long to wait in between."""
    max_attempts: int = DEFAULT_RETRIES
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF
    backoff_multiplier: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.backoff_seconds < 0 or self.backoff_multiplier < 1:
            raise ValueError("backoff_seconds must be >= 0 and backoff_multiplier >= 1")

    def delay_for(self, attempt: int) -> float:
        """Sleep before retry number ``attempt`` (1-based)."""
        return self.backoff_seconds * (self.backoff_multiplier ** (attempt - 1))


async def with_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "provider call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Awaits ``call()`` until it succeeds or the policy runs out of attempts.

    Only ``ProviderError`` is retried; the last one is re-raised.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await call()
        except ProviderError as e:
            if attempt >= policy.max_attempts:
                logger.error("%s failed after %d attempts: %s", description, attempt, e)
                raise
            delay = policy.delay_for(attempt)
            logger.warning("%s failed (attempt %d/%d): %s; retrying in %.1fs",
                           description, attempt, policy.max_attempts, e, delay)
            await sleep(delay)
    raise AssertionError("unreachable")
