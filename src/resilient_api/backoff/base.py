r"""Abstract base class for backoff strategies."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy"]

from abc import ABC, abstractmethod


class BaseBackoffStrategy(ABC):
    """Abstract base class for backoff strategies.

    A backoff strategy determines how long to wait before the next
    attempt of a failed request, based on the index of the attempt that
    just failed.
    """

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Calculate the backoff delay after a failed attempt.

        Args:
            attempt: The index of the attempt that failed (0-indexed).
                attempt=0 means the initial attempt failed and the first
                retry is about to happen.

        Returns:
            The delay in seconds before the next attempt.
        """
