r"""Asynchronous client for resilient calls to a backend API.

This module provides the ``ResilientApiClient`` async context manager.
It resolves paths against a base address, attaches the caller's bearer
credential, retries transient failures, and lets concurrent identical
read requests share one in-flight call.
"""

from __future__ import annotations

__all__ = ["ResilientApiClient"]

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from resilient_api.core.config import DEFAULT_BASE_URL, ClientConfig
from resilient_api.registry import InFlightRegistry
from resilient_api.request import RequestDescriptor, canonical_key, resolve_url
from resilient_api.retry.executor import RequestExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType
    from typing import Self

    from resilient_api.outcome import Outcome

logger: logging.Logger = logging.getLogger(__name__)


class ResilientApiClient:
    r"""Asynchronous context manager for resilient API calls.

    GET requests (and requests flagged ``idempotent``) issued while an
    identical request is still in flight share its outcome instead of
    hitting the network again. Mutating requests always run on their
    own.

    Args:
        base_url: The address relative paths are resolved against.
        config: Optional ClientConfig. If ``None``, a default ClientConfig
            is used.
        token_provider: Optional accessor returning the current bearer
            token, or ``None`` when the user is not authenticated. It is
            read on every attempt and never cached.
        client: Optional ``httpx.AsyncClient`` to send requests with. An
            injected client is usable without entering the context
            manager and is never closed by this class.

    Example:
        ```pycon
        >>> import asyncio
        >>> from resilient_api import ResilientApiClient
        >>> from resilient_api.core import ClientConfig
        >>> async def main():  # doctest: +SKIP
        ...     async with ResilientApiClient(
        ...         "https://api.example.com",
        ...         config=ClientConfig(max_retries=3),
        ...         token_provider=lambda: "secret-token",
        ...     ) as client:
        ...         songs = await client.get("/api/songs")
        ...         await client.post("/api/playlists", {"name": "Road trip"})
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        config: ClientConfig | None = None,
        token_provider: Callable[[], str | None] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self._config = config if config is not None else ClientConfig()
        self._token_provider = token_provider
        self._registry: InFlightRegistry[Outcome] = InFlightRegistry(
            window=self._config.dedup_window
        )

        self._owns_client = client is None
        self._client: httpx.AsyncClient | None = client
        self._executor: RequestExecutor | None = (
            self._make_executor(client) if client is not None else None
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_url={self.base_url!r})"

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def pending_count(self) -> int:
        r"""The number of read requests currently shared in flight."""
        self._registry.sweep()
        return len(self._registry)

    async def __aenter__(self) -> Self:
        """Enter the async context manager and create the underlying
        httpx client if none was injected.

        Returns:
            The ResilientApiClient instance for making requests.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
            self._executor = self._make_executor(self._client)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the async context manager, forget pending requests and
        close the underlying httpx client if this instance created it."""
        self.clear_pending_requests()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._executor = None

    def _make_executor(self, client: httpx.AsyncClient) -> RequestExecutor:
        return RequestExecutor(
            client,
            config=self._config,
            token_provider=self._token_provider,
            base_url=self.base_url,
        )

    def _ensure_executor(self) -> RequestExecutor:
        """Return the executor.

        Raises:
            RuntimeError: If the client is used outside of a context
                manager and no httpx client was injected.
        """
        if self._executor is None:
            msg = (
                "ResilientApiClient must be used within an async context manager "
                "(async with statement) or be given an httpx.AsyncClient"
            )
            raise RuntimeError(msg)
        return self._executor

    async def send(self, descriptor: RequestDescriptor) -> Outcome:
        r"""Run a request and return its outcome without raising.

        Deduplicable requests are looked up in the in-flight registry by
        canonical key; every other request runs its own attempt
        sequence.

        Args:
            descriptor: The request to run.

        Returns:
            The ``Success`` or ``Failure`` of the request. Callers
                sharing an in-flight request receive the same object.

        Raises:
            RuntimeError: If called outside of a context manager.
        """
        executor = self._ensure_executor()
        if not descriptor.deduplicable:
            return await executor.execute(descriptor)

        key = canonical_key(
            descriptor.method, resolve_url(self.base_url, descriptor.path), descriptor.body
        )
        task = self._registry.get_or_create(key, lambda: executor.execute(descriptor))
        return await asyncio.shield(task)

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        skip_auth: bool = False,
        skip_retry: bool = False,
        idempotent: bool = False,
    ) -> Any:
        r"""Send a request with automatic retry logic.

        Args:
            path: A path relative to the base URL, or an absolute URL.
            method: HTTP method (GET, POST, PUT, DELETE or PATCH).
            body: Optional payload; encoded as JSON unless ``str`` or
                ``bytes``. Never sent with GET.
            headers: Optional extra headers.
            timeout: Optional per-attempt timeout overriding the client's
                default, in seconds.
            skip_auth: If ``True``, no bearer credential is attached.
            skip_retry: If ``True``, the first failure is final.
            idempotent: If ``True``, concurrent identical requests share
                one outcome even for a non-GET method.

        Returns:
            The parsed response body: decoded JSON, text, or ``None`` for
                an empty response.

        Raises:
            RuntimeError: If called outside of a context manager.
            ValueError: If the method or timeout is invalid.
            HttpRequestError: If the request failed. The concrete type
                (``ClientError``, ``RateLimitedError``, ``ServerError``,
                ``NetworkError``, ``InvalidResponseError`` or
                ``ExhaustedRetriesError``) describes the failure.
        """
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            headers=httpx.Headers(headers),
            body=body,
            timeout=timeout,
            skip_auth=skip_auth,
            skip_retry=skip_retry,
            idempotent=idempotent,
        )
        outcome = await self.send(descriptor)
        return outcome.unwrap()

    async def get(self, path: str, **kwargs: Any) -> Any:
        r"""Send a GET request; identical concurrent calls share one
        network call.

        Args:
            path: The path to send the GET request to.
            **kwargs: Additional keyword arguments (see request() method).

        Returns:
            The parsed response body.
        """
        return await self.request(path, method="GET", **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        r"""Send a POST request. Never deduplicated unless flagged
        ``idempotent``.

        Args:
            path: The path to send the POST request to.
            body: Optional payload.
            **kwargs: Additional keyword arguments (see request() method).

        Returns:
            The parsed response body.
        """
        return await self.request(path, method="POST", body=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        r"""Send a PUT request (see post())."""
        return await self.request(path, method="PUT", body=body, **kwargs)

    async def patch(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        r"""Send a PATCH request (see post())."""
        return await self.request(path, method="PATCH", body=body, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        r"""Send a DELETE request."""
        return await self.request(path, method="DELETE", **kwargs)

    def clear_pending_requests(self) -> None:
        r"""Forget all in-flight read requests.

        Useful for test isolation or on logout: the next request for any
        key starts a fresh attempt sequence. Callers already awaiting a
        shared request still receive its outcome.
        """
        if len(self._registry):
            logger.debug(f"Clearing {len(self._registry)} pending request(s)")
        self._registry.clear()
