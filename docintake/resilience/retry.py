"""Bounded async retry with exponential backoff for provider calls."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from docintake.config.settings import Settings
from docintake.logging.logger import Log

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a call and how long to wait between tries."""

    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 8.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, settings.retry_max_attempts),
            initial_delay_seconds=settings.retry_initial_delay_seconds,
            max_delay_seconds=settings.retry_max_delay_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before the retry that follows ``attempt`` (0-based)."""
        return min(self.initial_delay_seconds * (2**attempt), self.max_delay_seconds)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    retry_on: tuple[type[BaseException], ...],
    description: str,
) -> T:
    """Run ``operation`` until it succeeds or the attempts are exhausted.

    Only exceptions listed in ``retry_on`` are retried; anything else, and the
    last retryable failure, propagates unchanged.
    """
    for attempt in range(policy.max_attempts):
        try:
            return await operation()
        except retry_on as exc:
            if attempt + 1 >= policy.max_attempts:
                Log.error(
                    f"{description} failed after {policy.max_attempts} attempts: {exc}"
                )
                raise
            delay = policy.delay_for(attempt)
            Log.warning(
                f"{description} failed (attempt {attempt + 1}/{policy.max_attempts}), "
                f"retrying in {delay:.2f}s: {exc}"
            )
            await asyncio.sleep(delay)
    raise RuntimeError(f"{description}: retry policy allowed no attempts")
