"""Retry strategies using Strategy Pattern."""
import asyncio
import random
from abc import ABC, abstractmethod
from typing import Optional

from ..config import RetryConfig


class RetryStrategy(ABC):
    """Abstract retry strategy."""

    @abstractmethod
    def should_retry(self, attempt: int) -> bool:
        """Determines if another attempt is allowed after `attempt` tries."""
        pass

    @abstractmethod
    def delay_for(self, attempt: int) -> float:
        """Returns the delay before retry number `attempt`."""
        pass

    @abstractmethod
    async def wait_async(self, attempt: int):
        """Waits before retry (async)."""
        pass


class ExponentialBackoffStrategy(RetryStrategy):
    """Exponential backoff with jitter, driven by a RetryConfig."""

    def __init__(self, config: Optional[RetryConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or RetryConfig()
        self._rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def should_retry(self, attempt: int) -> bool:
        """Retries while the per-chunk attempt budget is not spent."""
        return attempt < self.config.max_attempts

    def delay_for(self, attempt: int) -> float:
        return self.config.calculate_delay(attempt, self._rng)

    async def wait_async(self, attempt: int):
        """Waits with exponential backoff (async)."""
        await asyncio.sleep(self.delay_for(attempt))
