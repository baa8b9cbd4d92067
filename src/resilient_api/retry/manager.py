r"""Callback manager for the request lifecycle.

This module provides the CallbackManager class that builds the info
objects and invokes the user-defined callbacks of a ``ClientConfig``.
"""

from __future__ import annotations

__all__ = ["CallbackManager"]

import time
from typing import TYPE_CHECKING

from resilient_api.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo

if TYPE_CHECKING:
    import httpx

    from resilient_api.core.config import ClientConfig
    from resilient_api.outcome import Failure


class CallbackManager:
    """Invokes the lifecycle callbacks configured on a ``ClientConfig``.

    Attempt numbers are received 0-indexed and handed to the callbacks
    1-indexed.

    Args:
        config: The configuration holding the callbacks.
    """

    def __init__(self, config: ClientConfig) -> None:
        self.config = config

    def on_request(self, url: str, method: str, attempt: int) -> None:
        if self.config.on_request is not None:
            self.config.on_request(
                RequestInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self.config.max_retries,
                )
            )

    def on_retry(
        self,
        url: str,
        method: str,
        attempt: int,
        wait_time: float,
        failure: Failure,
    ) -> None:
        """Invoke the on_retry callback.

        Args:
            url: The URL being requested.
            method: The HTTP method.
            attempt: The index of the attempt that failed (0-indexed).
            wait_time: The wait before the next attempt.
            failure: The failure that triggered the retry.
        """
        if self.config.on_retry is not None:
            self.config.on_retry(
                RetryInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 2,
                    max_retries=self.config.max_retries,
                    wait_time=wait_time,
                    kind=failure.kind,
                    error=failure.cause,
                    status_code=failure.status_code,
                )
            )

    def on_success(
        self,
        url: str,
        method: str,
        attempt: int,
        response: httpx.Response,
        start_time: float,
    ) -> None:
        if self.config.on_success is not None:
            self.config.on_success(
                ResponseInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self.config.max_retries,
                    response=response,
                    total_time=time.monotonic() - start_time,
                )
            )

    def on_failure(self, failure: Failure, start_time: float) -> None:
        if self.config.on_failure is not None:
            self.config.on_failure(
                FailureInfo(
                    url=failure.url,
                    method=failure.method,
                    attempt=failure.attempts,
                    max_retries=self.config.max_retries,
                    kind=failure.kind,
                    error=failure.to_exception(),
                    status_code=failure.status_code,
                    total_time=time.monotonic() - start_time,
                )
            )
