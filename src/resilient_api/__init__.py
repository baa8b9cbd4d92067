r"""resilient_api - Resilient asynchronous client for backend APIs.

This package provides an ``asyncio`` client for calling a backend HTTP
API without having to hand-roll retry loops. Built on top of httpx, it
retries transient failures, honors the server's retry hints, bounds
every attempt with a deadline, and lets identical concurrent reads share
a single network call.

Key Features:
    - Automatic retry of 429, 5xx and transport failures with
      exponential backoff (capped)
    - Retry-After header support (seconds and HTTP-date formats)
    - Definitive client errors (4xx) fail fast, never retried
    - Per-attempt timeout, overridable per request
    - Deduplication of concurrent identical GET requests
    - Bearer credential read from an injected accessor on every attempt
    - Tagged ``Success`` / ``Failure`` outcomes and typed exceptions
    - Lifecycle callbacks and opt-in structured logging

Example:
    ```pycon
    >>> import asyncio
    >>> from resilient_api import ResilientApiClient
    >>> from resilient_api.core import ClientConfig
    >>> async def main():  # doctest: +SKIP
    ...     async with ResilientApiClient(
    ...         "http://localhost:3001", config=ClientConfig(max_retries=2)
    ...     ) as client:
    ...         trending = await client.get("/api/trending")
    ...
    >>> asyncio.run(main())  # doctest: +SKIP

    ```
"""

from __future__ import annotations

__all__ = [
    "ClientConfig",
    "ClientError",
    "ContentKind",
    "ExhaustedRetriesError",
    "Failure",
    "FailureKind",
    "HttpRequestError",
    "InFlightRegistry",
    "InvalidResponseError",
    "NetworkError",
    "Outcome",
    "RateLimitedError",
    "RequestDescriptor",
    "RequestExecutor",
    "RequestTimeoutError",
    "ResilientApiClient",
    "ServerError",
    "Success",
    "__version__",
]

from importlib.metadata import PackageNotFoundError, version

from resilient_api.client import ResilientApiClient
from resilient_api.core.config import ClientConfig
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
from resilient_api.outcome import ContentKind, Failure, FailureKind, Outcome, Success
from resilient_api.registry import InFlightRegistry
from resilient_api.request import RequestDescriptor
from resilient_api.retry.executor import RequestExecutor

try:
    __version__ = version("resilient-api")
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
