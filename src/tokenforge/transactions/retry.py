"""Retry with exponential backoff around fallible async operations."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import TypeVar

from tokenforge.ledger import ExpiredWindow, TransientTransportError

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 5
    initial_delay: float = 1.0
    multiplier: float = 2.0
    jitter: float = 0.0
    retry_on: tuple[type[BaseException], ...] = (TransientTransportError, ExpiredWindow)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")
        if self.jitter < 0:
            raise ValueError("jitter must be non-negative")

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retry_on)

    def delays(self) -> Iterator[float]:
        """Base delays between attempts, before jitter."""

        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay *= self.multiplier


class RetryExecutor:
    """Run an operation until it succeeds, fails fatally or runs out of attempts."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run(self, operation: Callable[[], Awaitable[T]], policy: RetryPolicy | None = None) -> T:
        active = policy or self._policy
        delays = active.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as exc:
                if not active.is_retryable(exc):
                    raise
                delay = next(delays, None)
                if delay is None:
                    exc.add_note(f"gave up after {attempt} attempts")
                    raise
                if active.jitter:
                    delay += self._rng.uniform(0, active.jitter)
                logger.warning(
                    "Attempt %d/%d failed with %s: %s; retrying in %.2fs",
                    attempt,
                    active.max_attempts,
                    type(exc).__name__,
                    exc,
                    delay,
                )
                await self._sleep(delay)


__all__ = ["RetryExecutor", "RetryPolicy", "SleepFn"]
