"""Retry policy with exponential backoff and jitter.

Only classified HTTP failures with a retryable status are retried. Transport,
decode and validation failures never are.
"""

import random
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional

from prcclient.core.config import Settings
from prcclient.exceptions import RETRYABLE_STATUSES, HttpError


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Additional attempts after the first (default: 3)
        base_delay_ms: Delay before the first retry (default: 300)
        jitter_ms: Upper bound of the random amount added to each delay
        max_delay_ms: Ceiling applied after jitter (default: 10000)
        exponential_base: Base for exponential calculation (default: 2.0)
        retryable_statuses: HTTP statuses that trigger a retry

    Example:
        >>> policy = RetryPolicy(jitter_ms=0)
        >>> policy.calculate_delay(attempt=2)
        1200.0
    """

    max_retries: int = 3
    base_delay_ms: float = 300.0
    jitter_ms: float = 200.0
    max_delay_ms: float = 10_000.0
    exponential_base: float = 2.0
    retryable_statuses: FrozenSet[int] = field(default_factory=lambda: RETRYABLE_STATUSES)
    rng: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.max_retries = max(0, int(self.max_retries))

    def calculate_delay(self, attempt: int) -> float:
        """Backoff for a retry attempt (0-indexed), in milliseconds.

        ``min(max_delay_ms, base_delay_ms * exponential_base ** attempt + jitter)``
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        jitter = self.rng() * self.jitter_ms
        return float(min(self.max_delay_ms, delay + jitter))

    def is_retryable(self, exception: BaseException) -> bool:
        return isinstance(exception, HttpError) and exception.status in self.retryable_statuses

    def delay_for(self, exception: HttpError, attempt: int) -> tuple[float, bool]:
        """Wait before the next attempt and whether it came from a server hint."""
        hint: Optional[float] = exception.retry_after_ms
        if hint is not None:
            return max(0.0, hint), True
        return self.calculate_delay(attempt), False

    @classmethod
    def from_settings(cls, s: Settings, max_retries: Optional[int] = None) -> "RetryPolicy":
        return cls(
            max_retries=s.retries if max_retries is None else max_retries,
            base_delay_ms=s.backoff_base_ms,
            jitter_ms=s.backoff_jitter_ms,
            max_delay_ms=s.backoff_max_ms,
        )
