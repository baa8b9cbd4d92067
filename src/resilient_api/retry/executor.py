r"""Asynchronous retry executor for API requests.

This module provides the RequestExecutor class that drives one logical
request through its attempts: building headers, enforcing the attempt
deadline, classifying the result, and waiting between attempts.
"""

from __future__ import annotations

__all__ = ["RequestExecutor"]

import asyncio
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx

from resilient_api.backoff import ExponentialBackoff
from resilient_api.core.config import DEFAULT_BASE_URL, ClientConfig
from resilient_api.outcome import ContentKind, Failure, FailureKind, Outcome, Success
from resilient_api.request import resolve_url
from resilient_api.retry.classifier import classify_exception, classify_status, is_retryable
from resilient_api.retry.manager import CallbackManager
from resilient_api.utils.sleep import calculate_sleep_time
from resilient_api.utils.structured_logging import get_correlation_id, log_structured

if TYPE_CHECKING:
    from collections.abc import Callable

    from resilient_api.backoff import BaseBackoffStrategy
    from resilient_api.request import RequestDescriptor

logger: logging.Logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"


class RequestExecutor:
    """Executes a request with automatic retry logic.

    Each logical request goes through ``Attempting(0)``, then either
    ``Succeeded``, ``Failed``, or ``Waiting(delay)`` followed by
    ``Attempting(attempt + 1)``:

    - 2xx: the body is parsed (JSON or text) and returned as ``Success``
    - 429: retried after the Retry-After hint, or a backoff delay when
      there is none, while retries remain
    - 5xx: retried after a backoff delay while retries remain
    - other 4xx: returned as ``Failure`` immediately, never retried
    - transport errors and expired deadlines: retried like 5xx

    HTTP and transport failures never raise: the executor returns a
    ``Failure`` describing the last attempt.

    Args:
        client: The HTTP client used to send requests.
        config: Retry, timeout and callback configuration.
        token_provider: Optional accessor returning the bearer token. It
            is called on every attempt, so a rotated credential is picked
            up immediately.
        base_url: The address relative paths are resolved against.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from resilient_api.core import ClientConfig
        >>> from resilient_api.request import RequestDescriptor
        >>> from resilient_api.retry import RequestExecutor
        >>> async def main() -> object:
        ...     transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"id": 1}))
        ...     async with httpx.AsyncClient(transport=transport) as client:
        ...         executor = RequestExecutor(client, ClientConfig())
        ...         outcome = await executor.execute(RequestDescriptor("GET", "/songs/1"))
        ...     return outcome.payload
        ...
        >>> asyncio.run(main())
        {'id': 1}

        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ClientConfig | None = None,
        token_provider: Callable[[], str | None] | None = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.client = client
        self.config = config if config is not None else ClientConfig()
        self.token_provider = token_provider
        self.base_url = base_url
        self.backoff_strategy: BaseBackoffStrategy = (
            self.config.backoff_strategy
            if self.config.backoff_strategy is not None
            else ExponentialBackoff(self.config.base_delay, self.config.max_delay)
        )
        self.callbacks: CallbackManager = CallbackManager(self.config)

    def build_headers(self, descriptor: RequestDescriptor) -> httpx.Headers:
        """Build the headers of one attempt.

        The caller's headers override the defaults, and the bearer
        credential (unless ``skip_auth``) overrides the caller's
        ``Authorization`` header.

        Args:
            descriptor: The request being sent.

        Returns:
            The headers to send.
        """
        headers = httpx.Headers({"Accept": "application/json"})
        if descriptor.sends_body:
            headers["Content-Type"] = "application/json"
        headers.update(descriptor.headers)

        correlation_id = get_correlation_id()
        if correlation_id is not None and CORRELATION_ID_HEADER not in headers:
            headers[CORRELATION_ID_HEADER] = correlation_id

        if not descriptor.skip_auth and self.token_provider is not None:
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def execute(self, descriptor: RequestDescriptor) -> Outcome:
        """Run ``descriptor`` until it succeeds or a final failure occurs.

        Attempts the request up to ``max_retries + 1`` times (only once
        if ``skip_retry`` is set). Attempts are strictly sequential.

        Args:
            descriptor: The request to run.

        Returns:
            ``Success`` with the parsed body, or ``Failure`` describing
                the last observed failure.
        """
        url = resolve_url(self.base_url, descriptor.path)
        method = descriptor.method
        max_retries = 0 if descriptor.skip_retry else self.config.max_retries
        start_time = time.monotonic()

        outcome: Outcome | None = None
        retryable = False
        for attempt in range(max_retries + 1):
            self.callbacks.on_request(url, method, attempt)
            logger.debug(f"{method} {url}: attempt {attempt + 1}/{max_retries + 1}")
            outcome = await self._attempt(descriptor, url)

            if isinstance(outcome, Success):
                outcome = replace(outcome, attempts=attempt + 1)
                if outcome.response is not None:
                    self.callbacks.on_success(url, method, attempt, outcome.response, start_time)
                return outcome

            retryable = is_retryable(outcome.status_code, outcome.cause)
            if not retryable or attempt == max_retries:
                break

            # Only a rate-limited response has its Retry-After hint honored
            hinted = outcome.response if outcome.kind is FailureKind.RATE_LIMITED else None
            sleep_time = calculate_sleep_time(
                attempt=attempt,
                response=hinted,
                backoff_strategy=self.backoff_strategy,
                max_wait_time=self.config.max_delay,
                jitter_factor=self.config.jitter_factor,
            )
            log_structured(
                logger,
                logging.DEBUG,
                f"{method} {url}: will retry in {sleep_time:.2f}s ({outcome.kind.value})",
                method=method,
                url=url,
                attempt=attempt + 1,
                wait_time=sleep_time,
                failure_kind=outcome.kind.value,
                status_code=outcome.status_code,
            )
            self.callbacks.on_retry(url, method, attempt, sleep_time, outcome)
            await asyncio.sleep(sleep_time)

        failure = replace(
            outcome,
            attempts=attempt + 1,
            exhausted=retryable and max_retries > 0,
        )
        log_structured(
            logger,
            logging.DEBUG,
            f"{method} {url}: giving up after {failure.attempts} attempt(s): {failure.message}",
            method=method,
            url=url,
            attempt=failure.attempts,
            failure_kind=failure.kind.value,
            status_code=failure.status_code,
        )
        self.callbacks.on_failure(failure, start_time)
        return failure

    async def _attempt(self, descriptor: RequestDescriptor, url: str) -> Outcome:
        """Send one attempt and classify its result."""
        method = descriptor.method
        timeout = descriptor.timeout if descriptor.timeout is not None else self.config.timeout
        kwargs: dict[str, Any] = {}
        if descriptor.sends_body:
            if isinstance(descriptor.body, (str, bytes)):
                kwargs["content"] = descriptor.body
            else:
                kwargs["json"] = descriptor.body

        try:
            # The deadline cancels the in-flight call, timer included, on expiry
            async with asyncio.timeout(timeout):
                response = await self.client.request(
                    method,
                    url,
                    headers=self.build_headers(descriptor),
                    timeout=timeout,
                    **kwargs,
                )
        except (httpx.RequestError, TimeoutError) as exc:
            kind = classify_exception(exc)
            if kind is FailureKind.TIMEOUT:
                message = f"{method} request to {url} timed out after {timeout}s"
            else:
                message = f"{method} request to {url} failed: {type(exc).__name__}: {exc}"
            logger.debug(message)
            return Failure(kind=kind, message=message, method=method, url=url, cause=exc)

        return self._evaluate_response(response, method, url)

    def _evaluate_response(self, response: httpx.Response, method: str, url: str) -> Outcome:
        status_code = response.status_code
        kind = classify_status(status_code)
        if kind is None:
            return self._parse_success(response, method, url)

        body = response.text
        message = f"{method} request to {url} failed with status {status_code}"
        if response.reason_phrase:
            message += f" {response.reason_phrase}"
        if kind is FailureKind.CLIENT_ERROR and body:
            message += f" - {body}"
        logger.debug(message)
        return Failure(
            kind=kind,
            message=message,
            method=method,
            url=url,
            status_code=status_code,
            body=body,
            response=response,
        )

    def _parse_success(self, response: httpx.Response, method: str, url: str) -> Outcome:
        if not response.content:
            return Success(
                payload=None,
                content_kind=ContentKind.EMPTY,
                status_code=response.status_code,
                response=response,
            )

        content_type = response.headers.get("Content-Type", "")
        if "json" not in content_type.lower():
            return Success(
                payload=response.text,
                content_kind=ContentKind.TEXT,
                status_code=response.status_code,
                response=response,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            return Failure(
                kind=FailureKind.INVALID_RESPONSE,
                message=f"{method} request to {url} returned an invalid JSON body: {exc}",
                method=method,
                url=url,
                status_code=response.status_code,
                body=response.text,
                response=response,
                cause=exc,
            )
        return Success(
            payload=payload,
            content_kind=ContentKind.JSON,
            status_code=response.status_code,
            response=response,
        )
