r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoff", "backoff_delay"]

from resilient_api.backoff.base import BaseBackoffStrategy


def backoff_delay(attempt: int, base_delay: float, max_delay: float | None = None) -> float:
    r"""Compute ``min(base_delay * 2 ** attempt, max_delay)``.

    Args:
        attempt: The index of the attempt that failed (0-indexed).
        base_delay: The delay in seconds after the first failure.
        max_delay: Optional absolute cap in seconds.

    Returns:
        The delay in seconds.

    Example:
        ```pycon
        >>> from resilient_api.backoff import backoff_delay
        >>> backoff_delay(0, base_delay=0.3, max_delay=30.0)
        0.3
        >>> backoff_delay(2, base_delay=0.3, max_delay=30.0)
        1.2
        >>> backoff_delay(20, base_delay=0.3, max_delay=30.0)
        30.0

        ```
    """
    delay = base_delay * (2**attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


class ExponentialBackoff(BaseBackoffStrategy):
    """Exponential backoff strategy.

    Calculates delay as: base_delay * (2 ** attempt), with optional max_delay cap.

    Args:
        base_delay: The base delay in seconds (default: 0.3).
        max_delay: Optional maximum delay cap in seconds.

    Example:
        ```pycon
        >>> from resilient_api.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(base_delay=0.3)
        >>> backoff.calculate(0)
        0.3
        >>> backoff.calculate(1)
        0.6
        >>> backoff = ExponentialBackoff(base_delay=1.0, max_delay=5.0)
        >>> backoff.calculate(10)
        5.0

        ```
    """

    def __init__(self, base_delay: float = 0.3, max_delay: float | None = None) -> None:
        if base_delay < 0:
            msg = f"base_delay must be non-negative, got {base_delay}"
            raise ValueError(msg)
        if max_delay is not None and max_delay <= 0:
            msg = f"max_delay must be positive if specified, got {max_delay}"
            raise ValueError(msg)

        self.base_delay = base_delay
        self.max_delay = max_delay

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_delay={self.base_delay}, max_delay={self.max_delay})"

    def calculate(self, attempt: int) -> float:
        return backoff_delay(attempt, self.base_delay, self.max_delay)
