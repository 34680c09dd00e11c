"""Exponential backoff for rate-limited Alloy calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429


class RetryPolicy(BaseModel):
    """Static retry configuration for one wrapped call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_retries: int = Field(3, ge=0)
    initial_delay_ms: int = Field(1000, ge=0)
    backoff_multiplier: float = Field(2.0, ge=1.0)

    def delay_seconds(self, attempt: int) -> float:
        """Backoff before retry *attempt* (0-indexed)."""
        return self.initial_delay_ms * (self.backoff_multiplier ** attempt) / 1000.0


def is_rate_limited(exc: BaseException) -> bool:
    return getattr(exc, "status_code", None) == RATE_LIMIT_STATUS


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run *operation*, retrying only on HTTP 429 responses.

    Any other error, or a 429 once ``max_retries`` is used up, propagates
    unchanged. The wrapper knows nothing about idempotency; callers decide what
    is safe to wrap.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if not is_rate_limited(exc) or attempt >= policy.max_retries:
                raise
            delay = policy.delay_seconds(attempt)
            logger.warning(
                "Rate limited by Alloy, retrying in %.2fs (attempt %d/%d)",
                delay, attempt + 1, policy.max_retries,
            )
            await sleep(delay)
            attempt += 1
