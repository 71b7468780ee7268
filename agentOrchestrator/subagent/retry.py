"""Retry policies (strategy objects shared by all step executions).

A policy answers two questions for the retry loop: how many retries follow
the initial attempt, and how long to wait before retry ``n`` (1-based).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, Optional, Union

from agentOrchestrator.agents.schema import RetryPolicyKind


class RetryPolicy(ABC):
    """Base retry strategy."""

    kind: RetryPolicyKind

    def __init__(self, max_retries: int = 0):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.max_retries = max_retries

    @property
    def max_attempts(self) -> int:
        """Initial attempt plus retries."""
        return self.max_retries + 1

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt follows failed attempt number ``attempt`` (1-based)."""
        return attempt <= self.max_retries

    @abstractmethod
    def delay(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (1-based)."""

    def delays(self) -> Iterator[float]:
        for retry in range(1, self.max_retries + 1):
            yield self.delay(retry)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_retries={self.max_retries})"


class NoRetry(RetryPolicy):
    """Single attempt; any failure is terminal."""

    kind = RetryPolicyKind.NONE

    def __init__(self):
        super().__init__(max_retries=0)

    def delay(self, retry: int) -> float:
        return 0.0


class FixedRetry(RetryPolicy):
    """Constant delay between attempts."""

    kind = RetryPolicyKind.FIXED

    def __init__(self, max_retries: int, delay: float = 1.0):
        super().__init__(max_retries)
        self._delay = max(0.0, delay)

    def delay(self, retry: int) -> float:
        return self._delay


class ExponentialRetry(RetryPolicy):
    """Delay doubles each retry from ``base_delay`` (1s, 2s, 4s, ...), capped at ``max_delay``."""

    kind = RetryPolicyKind.EXPONENTIAL

    def __init__(self, max_retries: int, base_delay: float = 1.0, max_delay: float = 30.0):
        super().__init__(max_retries)
        self.base_delay = max(0.0, base_delay)
        self.max_delay = max(self.base_delay, max_delay)

    def delay(self, retry: int) -> float:
        return min(self.base_delay * (2 ** (retry - 1)), self.max_delay)


def build_retry_policy(
    kind: Union[RetryPolicyKind, str, None],
    max_retries: Optional[int] = None,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    default_max_retries: int = 3,
) -> RetryPolicy:
    """Create a retry policy from resolved execution settings.

    Args:
        kind: none / fixed / exponential (None means none)
        max_retries: Retries after the initial attempt (None uses the default)
        base_delay: Fixed delay, or exponential starting delay (seconds)
        max_delay: Exponential cap (seconds)
        default_max_retries: Used when ``max_retries`` is None

    Returns:
        RetryPolicy instance
    """
    kind = RetryPolicyKind(kind or RetryPolicyKind.NONE)
    retries = default_max_retries if max_retries is None else max_retries

    if kind == RetryPolicyKind.NONE or retries == 0:
        return NoRetry()
    if kind == RetryPolicyKind.FIXED:
        return FixedRetry(retries, delay=base_delay)
    return ExponentialRetry(retries, base_delay=base_delay, max_delay=max_delay)
