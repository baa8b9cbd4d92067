r"""Retry-After header parsing utilities.

This module provides functions for reading the server's retry hint from
the ``Retry-After`` header of an HTTP response (RFC 7231, section 7.1.3).
"""

from __future__ import annotations

__all__ = ["parse_retry_after", "retry_after_override"]

import logging
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

logger: logging.Logger = logging.getLogger(__name__)


def parse_retry_after(retry_after_header: str | None) -> float | None:
    """Parse the value of a Retry-After header.

    Two formats are accepted:
    1. A number of seconds to wait (e.g., "120")
    2. An HTTP-date (e.g., "Wed, 21 Oct 2015 07:28:00 GMT")

    Args:
        retry_after_header: The header value, or None if the header is
            absent.

    Returns:
        The number of seconds to wait, or None if the header is absent,
            negative, or cannot be parsed. Dates in the past are clamped
            to 0.0.

    Example:
        ```pycon
        >>> from resilient_api.utils import parse_retry_after
        >>> parse_retry_after("2")
        2.0
        >>> parse_retry_after(None) is None
        True
        >>> parse_retry_after("soon") is None
        True
        >>> parse_retry_after("-5") is None
        True

        ```
    """
    if retry_after_header is None:
        return None
    value = retry_after_header.strip()
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds) or seconds < 0:
            logger.debug(f"Ignoring out-of-range Retry-After header: {retry_after_header!r}")
            return None
        return seconds

    try:
        retry_date: datetime = parsedate_to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        logger.debug(f"Failed to parse Retry-After header: {retry_after_header!r}")
        return None
    if retry_date.tzinfo is None:
        retry_date = retry_date.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_date - datetime.now(timezone.utc)).total_seconds())


def retry_after_override(headers: Mapping[str, str] | None) -> float | None:
    """Return the retry hint carried by response headers, in seconds.

    Args:
        headers: The response headers. Lookup is case-insensitive when
            an ``httpx.Headers`` instance is given.

    Returns:
        The hint in seconds, or None when the exponential backoff
            should be used instead.

    Example:
        ```pycon
        >>> import httpx
        >>> from resilient_api.utils import retry_after_override
        >>> retry_after_override(httpx.Headers({"retry-after": "2"}))
        2.0
        >>> retry_after_override(httpx.Headers()) is None
        True

        ```
    """
    if headers is None:
        return None
    return parse_retry_after(headers.get("Retry-After"))
