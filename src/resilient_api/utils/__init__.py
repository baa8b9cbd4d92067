r"""Helpers for retry delays and logging.

This package provides the Retry-After header parsing, the computation
of the wait between attempts, and the opt-in structured logging
helpers.
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "calculate_sleep_time",
    "clear_correlation_id",
    "get_correlation_id",
    "log_structured",
    "parse_retry_after",
    "retry_after_override",
    "set_correlation_id",
]

from resilient_api.utils.retry_after import parse_retry_after, retry_after_override
from resilient_api.utils.sleep import calculate_sleep_time
from resilient_api.utils.structured_logging import (
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    log_structured,
    set_correlation_id,
)
