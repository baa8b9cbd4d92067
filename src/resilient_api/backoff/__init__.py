r"""Backoff strategies for the delay between attempts."""

from __future__ import annotations

__all__ = ["BaseBackoffStrategy", "ConstantBackoff", "ExponentialBackoff", "backoff_delay"]

from resilient_api.backoff.base import BaseBackoffStrategy
from resilient_api.backoff.constant import ConstantBackoff
from resilient_api.backoff.exponential import ExponentialBackoff, backoff_delay
