import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from flightchat.obs.logger import log_event


T = TypeVar("T")


class RetryPolicy:
    """Bounded retry for awaitables.

    ``backoff="linear"`` waits ``base_delay * attempt`` (0.5s, 1.0s, ...),
    ``backoff="exponential"`` waits ``base_delay * 2 ** (attempt - 1)`` capped
    at ``max_delay``. With ``jitter`` the delay is scaled by a random factor
    in [0.5, 1.5).
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        backoff: str = "linear",
        max_delay: float = 30.0,
        jitter: bool = False,
        retry_on: Optional[Callable[[Exception], bool]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if backoff not in ("linear", "exponential"):
            raise ValueError(f"unknown backoff: {backoff}")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff = backoff
        self.max_delay = max_delay
        self.jitter = jitter
        self.retry_on = retry_on or (lambda exc: True)
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        if self.backoff == "linear":
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay * (2 ** (attempt - 1))
        delay = min(delay, self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)
        return delay

    async def run(self, func: Callable[[], Awaitable[T]], name: str = "operation") -> T:
        """Await ``func()`` until it succeeds or attempts run out.

        Exceptions rejected by ``retry_on`` propagate immediately; the last
        exception propagates once attempts are exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func()
            except Exception as e:
                if attempt >= self.max_attempts or not self.retry_on(e):
                    raise
                delay = self.delay_for(attempt)
                log_event(
                    "retry_scheduled",
                    level="WARNING",
                    operation=name,
                    attempt=attempt,
                    delay_s=round(delay, 3),
                    error=str(e),
                )
                await self._sleep(delay)
