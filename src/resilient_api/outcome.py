r"""Define the tagged result of a logical request.

A logical request (one call to the client, possibly spanning several
attempts) always ends in exactly one ``Outcome``: either ``Success`` or
``Failure``. The retry loop threads these values instead of relying on
exception types, and callers turn them into a payload or an exception
with ``unwrap``.
"""

from __future__ import annotations

__all__ = ["ContentKind", "Failure", "FailureKind", "Outcome", "Success"]

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn, Union

from resilient_api.exceptions import (
    ClientError,
    ExhaustedRetriesError,
    HttpRequestError,
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)

if TYPE_CHECKING:
    import httpx


class ContentKind(enum.Enum):
    r"""How the body of a successful response was interpreted."""

    JSON = "json"
    TEXT = "text"
    EMPTY = "empty"


class FailureKind(enum.Enum):
    r"""Classification of a failed logical request."""

    CLIENT_ERROR = "client_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"


_ERROR_TYPES: dict[FailureKind, type[HttpRequestError]] = {
    FailureKind.CLIENT_ERROR: ClientError,
    FailureKind.RATE_LIMITED: RateLimitedError,
    FailureKind.SERVER_ERROR: ServerError,
    FailureKind.NETWORK_ERROR: NetworkError,
    FailureKind.TIMEOUT: RequestTimeoutError,
    FailureKind.INVALID_RESPONSE: InvalidResponseError,
}


@dataclass(frozen=True)
class Success:
    r"""A request that completed with a 2xx response.

    Attributes:
        payload: The parsed body (decoded JSON, text, or ``None`` when
            the response has no content).
        content_kind: How ``payload`` was parsed.
        status_code: The HTTP status code of the response.
        attempts: The number of attempts the request took.
        response: The raw HTTP response.
    """

    payload: Any
    content_kind: ContentKind
    status_code: int
    attempts: int = 1
    response: httpx.Response | None = None

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        r"""Return the parsed payload."""
        return self.payload


@dataclass(frozen=True)
class Failure:
    r"""A request that ended without a usable response.

    Attributes:
        kind: The classification of the last observed failure.
        message: A human-readable description of the last failure.
        method: The HTTP method of the request.
        url: The absolute URL of the request.
        status_code: The HTTP status code of the last response, if any.
        attempts: The number of attempts that were made.
        exhausted: ``True`` if the failure was retryable and the request
            stopped because a non-empty retry budget ran out.
        body: The body text of the last response, if any.
        response: The last HTTP response, if any.
        cause: The transport exception of the last attempt, if any.
    """

    kind: FailureKind
    message: str
    method: str
    url: str
    status_code: int | None = None
    attempts: int = 1
    exhausted: bool = False
    body: str | None = None
    response: httpx.Response | None = None
    cause: BaseException | None = None

    @property
    def ok(self) -> bool:
        return False

    def to_exception(self) -> HttpRequestError:
        r"""Build the exception describing this failure.

        Returns:
            The kind-specific exception, wrapped in an
                ``ExhaustedRetriesError`` when the retry budget ran out.

        Example:
            ```pycon
            >>> from resilient_api.outcome import Failure, FailureKind
            >>> failure = Failure(
            ...     kind=FailureKind.CLIENT_ERROR,
            ...     message="POST request to http://localhost:3001/songs failed with status 404",
            ...     method="POST",
            ...     url="http://localhost:3001/songs",
            ...     status_code=404,
            ... )
            >>> failure.to_exception()
            ClientError(method='POST', url='http://localhost:3001/songs', status_code=404)

            ```
        """
        error = _ERROR_TYPES[self.kind](
            method=self.method,
            url=self.url,
            message=self.message,
            status_code=self.status_code,
            response=self.response,
            body=self.body,
            cause=self.cause,
        )
        if self.cause is not None:
            error.__cause__ = self.cause
        if self.exhausted:
            wrapped = ExhaustedRetriesError(error, attempts=self.attempts)
            wrapped.__cause__ = error
            return wrapped
        return error

    def unwrap(self) -> NoReturn:
        r"""Raise the exception describing this failure."""
        raise self.to_exception()


Outcome = Union[Success, Failure]
