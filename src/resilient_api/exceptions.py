r"""Define the exceptions raised to callers of the API client.

Every exception derives from ``HttpRequestError`` so callers that do not
care about the failure kind can catch a single type, while callers that
need distinct handling (rate limiting versus a definitive client error
versus a flaky network) can catch the specific subclass.
"""

from __future__ import annotations

__all__ = [
    "ClientError",
    "ExhaustedRetriesError",
    "HttpRequestError",
    "InvalidResponseError",
    "NetworkError",
    "RateLimitedError",
    "RequestTimeoutError",
    "ServerError",
]

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


class HttpRequestError(RuntimeError):
    r"""Base exception for failed HTTP requests.

    Args:
        method: The HTTP method of the failed request.
        url: The URL of the failed request.
        message: A human-readable description of the failure.
        status_code: The HTTP status code, if a response was received.
        response: The last HTTP response, if one was received.
        body: The response body text, if any.
        cause: The underlying exception, if any.

    Example:
        ```pycon
        >>> from resilient_api.exceptions import HttpRequestError
        >>> error = HttpRequestError(
        ...     method="GET",
        ...     url="https://api.example.com/songs",
        ...     message="GET request to https://api.example.com/songs failed with status 404",
        ...     status_code=404,
        ... )
        >>> error.status_code
        404

        ```
    """

    def __init__(
        self,
        method: str,
        url: str,
        message: str,
        status_code: int | None = None,
        response: httpx.Response | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.message = message
        self.status_code = status_code
        self.response = response
        self.body = body
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(method={self.method!r}, url={self.url!r}, "
            f"status_code={self.status_code!r})"
        )


class ClientError(HttpRequestError):
    r"""Raised for 4xx responses other than 429.

    These are definitive and never retried.
    """


class RateLimitedError(HttpRequestError):
    r"""Raised when the server keeps answering 429 Too Many Requests."""


class ServerError(HttpRequestError):
    r"""Raised for 5xx responses."""


class NetworkError(HttpRequestError):
    r"""Raised when no HTTP response could be obtained (connection
    refused, DNS failure, broken connection...)."""


class RequestTimeoutError(NetworkError):
    r"""Raised when an attempt did not complete before its deadline."""


class InvalidResponseError(HttpRequestError):
    r"""Raised when a response cannot be interpreted, for example a
    successful response whose JSON body cannot be decoded."""


class ExhaustedRetriesError(HttpRequestError):
    r"""Raised when the retry budget ran out on a retryable failure.

    Args:
        last_error: The kind-specific exception describing the last
            attempt (``RateLimitedError``, ``ServerError``,
            ``NetworkError``...).
        attempts: The total number of attempts that were made.
    """

    def __init__(self, last_error: HttpRequestError, attempts: int) -> None:
        super().__init__(
            method=last_error.method,
            url=last_error.url,
            message=f"{last_error.message} (gave up after {attempts} attempts)",
            status_code=last_error.status_code,
            response=last_error.response,
            body=last_error.body,
            cause=last_error,
        )
        self.last_error = last_error
        self.attempts = attempts
