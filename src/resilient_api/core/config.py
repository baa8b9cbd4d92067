r"""Configuration dataclass and defaults for ResilientApiClient.

This module provides configuration constants and a dataclass-based
configuration object for the ``ResilientApiClient`` async context
manager.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_BASE_URL",
    "DEFAULT_DEDUP_WINDOW",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT",
    "ClientConfig",
]

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from resilient_api.core.validation import validate_client_params

if TYPE_CHECKING:
    from collections.abc import Callable

    from resilient_api.backoff import BaseBackoffStrategy
    from resilient_api.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo


# Address of the backend when none is given
DEFAULT_BASE_URL = "http://localhost:3001"

# Default maximum number of retry attempts
# Total attempts = max_retries + 1 (initial attempt)
DEFAULT_MAX_RETRIES = 1

# Default base delay in seconds for exponential backoff
# Wait time = base_delay * (2 ** attempt), capped at max_delay
# With 0.3: 1st retry waits 0.3s, 2nd waits 0.6s, 3rd waits 1.2s
DEFAULT_BASE_DELAY = 0.3

# Cap in seconds on a single backoff wait; a Retry-After hint is not capped
DEFAULT_MAX_DELAY = 30.0

# Default timeout in seconds for one attempt
DEFAULT_TIMEOUT = 10.0

# Lifetime in seconds of a shared in-flight read request
DEFAULT_DEDUP_WINDOW = 1.0


@dataclass
class ClientConfig:
    """Configuration for ResilientApiClient behavior.

    Args:
        max_retries: Maximum number of retry attempts after the first one.
            Must be >= 0.
        base_delay: Base delay in seconds of the exponential backoff.
            Must be >= 0.
        max_delay: Cap in seconds on a backoff wait between attempts.
            Must be > 0.
        timeout: Default per-attempt timeout in seconds. Must be > 0.
        dedup_window: Lifetime in seconds of an in-flight entry used to
            share identical read requests. Must be > 0.
        jitter_factor: Factor for adding random jitter to backoff delays.
            Must be >= 0. Disabled by default.
        backoff_strategy: Optional custom backoff strategy. When ``None``,
            an ``ExponentialBackoff(base_delay, max_delay)`` is used.
        on_request: Optional callback called before each attempt.
        on_retry: Optional callback called before each backoff wait.
        on_success: Optional callback called when a request succeeds.
        on_failure: Optional callback called when a request fails.

    Example:
        ```pycon
        >>> from resilient_api.core.config import ClientConfig
        >>> config = ClientConfig()
        >>> config.max_retries
        1
        >>> config.base_delay
        0.3
        >>> merged = config.merge(max_retries=3)
        >>> merged.max_retries
        3
        >>> config.max_retries
        1

        ```
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    timeout: float = DEFAULT_TIMEOUT
    dedup_window: float = DEFAULT_DEDUP_WINDOW
    jitter_factor: float = 0.0
    backoff_strategy: BaseBackoffStrategy | None = None
    on_request: Callable[[RequestInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[ResponseInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_client_params(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            timeout=self.timeout,
            dedup_window=self.dedup_window,
            jitter_factor=self.jitter_factor,
        )

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied, so optional keyword
        arguments can be forwarded without filtering them first.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new validated ClientConfig instance.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)
