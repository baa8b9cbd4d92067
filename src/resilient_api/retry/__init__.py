r"""Retry package: failure classification, callbacks and the attempt
loop.

Public API:
    - is_retryable: Decide whether a failed attempt may be retried
    - classify_status: Map an HTTP status code to a failure kind
    - classify_exception: Map a transport exception to a failure kind
    - CallbackManager: Invoke the lifecycle callbacks
    - RequestExecutor: Run a request through its attempts
"""

from __future__ import annotations

__all__ = [
    "CallbackManager",
    "RequestExecutor",
    "classify_exception",
    "classify_status",
    "is_retryable",
]

from resilient_api.retry.classifier import classify_exception, classify_status, is_retryable
from resilient_api.retry.executor import RequestExecutor
from resilient_api.retry.manager import CallbackManager
