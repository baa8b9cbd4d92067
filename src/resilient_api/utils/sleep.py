r"""Computation of the wait between two attempts.

This module turns the server's Retry-After hint, or else the configured
backoff strategy with its optional jitter and cap, into the single delay
the retry loop sleeps for.
"""

from __future__ import annotations

__all__ = ["calculate_sleep_time"]

import logging
import random
from typing import TYPE_CHECKING

from resilient_api.backoff.exponential import ExponentialBackoff
from resilient_api.utils.retry_after import retry_after_override

if TYPE_CHECKING:
    import httpx

    from resilient_api.backoff.base import BaseBackoffStrategy

logger: logging.Logger = logging.getLogger(__name__)


def calculate_sleep_time(
    attempt: int,
    response: httpx.Response | None = None,
    backoff_strategy: BaseBackoffStrategy | None = None,
    max_wait_time: float | None = None,
    jitter_factor: float = 0.0,
) -> float:
    """Calculate the wait before the next attempt.

    The sleep time is calculated as follows:
    1. Retry-After: if ``response`` carries a valid hint, it is used
       as is, without jitter or cap.
    2. Base delay: ``backoff_strategy.calculate(attempt)``.
    3. Jitter (if ``jitter_factor > 0``): up to
       ``jitter_factor * base`` seconds are added.
    4. Cap: the backoff delay never exceeds ``max_wait_time``.

    Args:
        attempt: The index of the attempt that failed (0-indexed).
        response: The failed response, if any. Used for its Retry-After
            header.
        backoff_strategy: The backoff strategy. Defaults to
            ``ExponentialBackoff()``.
        max_wait_time: Optional cap in seconds on the backoff delay.
        jitter_factor: Factor for random jitter. 0 disables jitter.

    Returns:
        The sleep time in seconds.

    Example:
        ```pycon
        >>> from resilient_api.utils.sleep import calculate_sleep_time
        >>> calculate_sleep_time(attempt=0)
        0.3
        >>> calculate_sleep_time(attempt=2)
        1.2
        >>> calculate_sleep_time(attempt=2, max_wait_time=1.0)
        1.0

        ```
    """
    retry_after = retry_after_override(response.headers) if response is not None else None
    if retry_after is not None:
        logger.debug(f"Using Retry-After header value: {retry_after:.2f}s")
        return retry_after

    if backoff_strategy is None:
        backoff_strategy = ExponentialBackoff()
    sleep_time = backoff_strategy.calculate(attempt)

    if jitter_factor > 0:
        jitter = random.uniform(0, jitter_factor) * sleep_time  # noqa: S311
        sleep_time += jitter

    if max_wait_time is not None and sleep_time > max_wait_time:
        logger.debug(f"Capping sleep time from {sleep_time:.2f}s to {max_wait_time:.2f}s")
        sleep_time = max_wait_time

    logger.debug(f"Waiting {sleep_time:.2f}s before retry")
    return sleep_time
