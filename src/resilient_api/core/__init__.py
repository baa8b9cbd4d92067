r"""Configuration objects and parameter validation."""

from __future__ import annotations

__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_BASE_URL",
    "DEFAULT_DEDUP_WINDOW",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
    "validate_client_params",
    "validate_timeout",
]

from resilient_api.core.config import (
    DEFAULT_BASE_DELAY,
    DEFAULT_BASE_URL,
    DEFAULT_DEDUP_WINDOW,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
    ClientConfig,
)
from resilient_api.core.validation import validate_client_params, validate_timeout
