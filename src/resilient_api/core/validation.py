r"""Parameter validation utilities for the API client configuration.

This module provides validation functions for retry, backoff, timeout
and deduplication parameters to ensure they meet the required
constraints before being used by the client.
"""

from __future__ import annotations

__all__ = ["validate_client_params", "validate_timeout"]


def validate_timeout(timeout: float) -> None:
    """Validate timeout parameter.

    Args:
        timeout: Maximum seconds an attempt may take. Must be > 0.

    Raises:
        ValueError: If timeout is <= 0.

    Example:
        ```pycon
        >>> from resilient_api.core.validation import validate_timeout
        >>> validate_timeout(10.0)
        >>> validate_timeout(0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got 0

        ```
    """
    if timeout <= 0:
        msg = f"timeout must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_client_params(
    max_retries: int,
    base_delay: float,
    max_delay: float,
    timeout: float,
    dedup_window: float,
    jitter_factor: float = 0.0,
) -> None:
    """Validate client parameters.

    Args:
        max_retries: Maximum number of retry attempts after the first
            one. Must be >= 0. A value of 0 means only the initial attempt.
        base_delay: Base delay in seconds of the exponential backoff.
            Must be >= 0.
        max_delay: Cap in seconds on a backoff wait between attempts.
            Must be > 0.
        timeout: Default per-attempt timeout in seconds. Must be > 0.
        dedup_window: Lifetime in seconds of an in-flight entry used to
            share identical read requests. Must be > 0.
        jitter_factor: Factor for adding random jitter to backoff delays.
            Must be >= 0.

    Raises:
        ValueError: If any parameter is out of range.

    Example:
        ```pycon
        >>> from resilient_api.core.validation import validate_client_params
        >>> validate_client_params(
        ...     max_retries=1, base_delay=0.3, max_delay=30.0, timeout=10.0, dedup_window=1.0
        ... )

        ```
    """
    if max_retries < 0:
        msg = f"max_retries must be >= 0, got {max_retries}"
        raise ValueError(msg)
    if base_delay < 0:
        msg = f"base_delay must be >= 0, got {base_delay}"
        raise ValueError(msg)
    if max_delay <= 0:
        msg = f"max_delay must be > 0, got {max_delay}"
        raise ValueError(msg)
    validate_timeout(timeout)
    if dedup_window <= 0:
        msg = f"dedup_window must be > 0, got {dedup_window}"
        raise ValueError(msg)
    if jitter_factor < 0:
        msg = f"jitter_factor must be >= 0, got {jitter_factor}"
        raise ValueError(msg)
