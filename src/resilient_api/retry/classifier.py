r"""Retry decision logic.

This module decides, from an HTTP status code or a transport exception,
which kind of failure occurred and whether it is worth another attempt.
"""

from __future__ import annotations

__all__ = ["classify_exception", "classify_status", "is_retryable"]

import httpx

from resilient_api.outcome import FailureKind

RATE_LIMITED_STATUS = 429


def _is_transport_error(error: BaseException | None) -> bool:
    # A deadline expiring around the call surfaces as the builtin TimeoutError
    return isinstance(error, (httpx.TransportError, TimeoutError))


def is_retryable(status_code: int | None, error: BaseException | None = None) -> bool:
    """Decide whether a failed attempt may be retried.

    Retryable: 429, any 5xx status, or no status at all together with a
    transport failure (connection refused, DNS failure, timeout). Any
    other 4xx is a definitive client error.

    Args:
        status_code: The HTTP status code, or None if no response was
            received.
        error: The exception raised by the attempt, if any.

    Returns:
        ``True`` if the failure is transient.

    Example:
        ```pycon
        >>> import httpx
        >>> from resilient_api.retry import is_retryable
        >>> is_retryable(429)
        True
        >>> is_retryable(503)
        True
        >>> is_retryable(404)
        False
        >>> is_retryable(None, httpx.ConnectError("refused"))
        True
        >>> is_retryable(None, ValueError("bug"))
        False

        ```
    """
    if status_code is not None:
        return status_code == RATE_LIMITED_STATUS or 500 <= status_code <= 599
    return _is_transport_error(error)


def classify_status(status_code: int) -> FailureKind | None:
    """Map an HTTP status code to a failure kind.

    Args:
        status_code: The HTTP status code.

    Returns:
        ``None`` for 2xx statuses, otherwise the failure kind.

    Example:
        ```pycon
        >>> from resilient_api.retry import classify_status
        >>> classify_status(200) is None
        True
        >>> classify_status(429)
        <FailureKind.RATE_LIMITED: 'rate_limited'>
        >>> classify_status(502)
        <FailureKind.SERVER_ERROR: 'server_error'>

        ```
    """
    if 200 <= status_code <= 299:
        return None
    if status_code == RATE_LIMITED_STATUS:
        return FailureKind.RATE_LIMITED
    if 400 <= status_code <= 499:
        return FailureKind.CLIENT_ERROR
    if 500 <= status_code <= 599:
        return FailureKind.SERVER_ERROR
    return FailureKind.INVALID_RESPONSE


def classify_exception(error: BaseException) -> FailureKind:
    """Map an exception raised by an attempt to a failure kind."""
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(error, httpx.TransportError):
        return FailureKind.NETWORK_ERROR
    return FailureKind.INVALID_RESPONSE
