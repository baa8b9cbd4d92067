r"""Callback data structures for observing the request lifecycle.

Four optional hooks can be set on ``ClientConfig``:
- on_request: called before each attempt
- on_retry: called before each backoff wait
- on_success: called when a request succeeds
- on_failure: called when a request ends in a failure

Example:
    ```pycon
    >>> from resilient_api import ResilientApiClient
    >>> from resilient_api.callbacks import RetryInfo
    >>> from resilient_api.core import ClientConfig
    >>> def log_retry(info: RetryInfo) -> None:
    ...     print(f"retrying {info.url} in {info.wait_time}s (attempt {info.attempt})")
    ...
    >>> client = ResilientApiClient(config=ClientConfig(on_retry=log_retry))

    ```
"""

from __future__ import annotations

__all__ = ["FailureInfo", "RequestInfo", "ResponseInfo", "RetryInfo"]

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from resilient_api.outcome import FailureKind


@dataclass
class RequestInfo:
    """Information passed to the on_request callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The attempt about to be made (1-indexed).
        max_retries: Maximum number of retry attempts configured.
    """

    url: str
    method: str
    attempt: int
    max_retries: int


@dataclass
class RetryInfo:
    """Information passed to the on_retry callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method.
        attempt: The attempt that will run after the wait (1-indexed).
            The first retry is attempt 2.
        max_retries: Maximum number of retry attempts configured.
        wait_time: The wait in seconds before the next attempt.
        kind: The kind of failure that triggered the retry.
        error: The transport exception that triggered the retry, if any.
        status_code: The HTTP status code that triggered the retry, if any.
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    wait_time: float
    kind: FailureKind
    error: BaseException | None
    status_code: int | None


@dataclass
class ResponseInfo:
    """Information passed to the on_success callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method.
        attempt: The attempt that succeeded (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        response: The successful HTTP response.
        total_time: Time spent on all attempts and waits, in seconds.
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    response: httpx.Response
    total_time: float


@dataclass
class FailureInfo:
    """Information passed to the on_failure callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method.
        attempt: The last attempt made (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        kind: The kind of the last failure.
        error: The exception the caller will see.
        status_code: The HTTP status code of the last response, if any.
        total_time: Time spent on all attempts and waits, in seconds.
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    kind: FailureKind
    error: Exception
    status_code: int | None
    total_time: float
