r"""Describe a logical request and derive its deduplication key."""

from __future__ import annotations

__all__ = [
    "DEDUPLICABLE_METHODS",
    "SUPPORTED_METHODS",
    "RequestDescriptor",
    "canonical_key",
    "resolve_url",
]

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from resilient_api.core.validation import validate_timeout

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

# Only plain reads are shared between concurrent callers unless a request
# is explicitly flagged idempotent
DEDUPLICABLE_METHODS = ("GET",)


@dataclass(frozen=True)
class RequestDescriptor:
    r"""Everything needed to run one logical request.

    A descriptor is immutable, so the retry loop sends exactly the same
    request on every attempt.

    Args:
        method: The HTTP method, one of ``SUPPORTED_METHODS``
            (case-insensitive).
        path: A path relative to the client's base URL, or an absolute URL.
        headers: Extra request headers. Names are case-insensitive.
        body: The request payload. ``str`` and ``bytes`` are sent as-is,
            anything else is encoded as JSON. Ignored for GET.
        timeout: Optional per-attempt timeout in seconds overriding the
            client default.
        skip_auth: If ``True``, no bearer credential is attached.
        skip_retry: If ``True``, the first failure is final.
        idempotent: If ``True``, concurrent identical requests are
            deduplicated even when the method is not GET.

    Example:
        ```pycon
        >>> from resilient_api.request import RequestDescriptor
        >>> descriptor = RequestDescriptor("get", "/songs", headers={"X-Trace": "1"})
        >>> descriptor.method
        'GET'
        >>> descriptor.headers["x-trace"]
        '1'
        >>> descriptor.deduplicable
        True

        ```
    """

    method: str
    path: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Any = None
    timeout: float | None = None
    skip_auth: bool = False
    skip_retry: bool = False
    idempotent: bool = False

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in SUPPORTED_METHODS:
            msg = f"method must be one of {SUPPORTED_METHODS}, got {self.method!r}"
            raise ValueError(msg)
        if self.timeout is not None:
            validate_timeout(self.timeout)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", httpx.Headers(self.headers))

    @property
    def deduplicable(self) -> bool:
        r"""Whether concurrent identical requests may share one outcome."""
        return self.method in DEDUPLICABLE_METHODS or self.idempotent

    @property
    def sends_body(self) -> bool:
        return self.body is not None and self.method != "GET"


def resolve_url(base_url: str, path: str) -> str:
    r"""Return the absolute URL of ``path``.

    Absolute URLs are returned unchanged; relative paths are appended to
    ``base_url``.

    Example:
        ```pycon
        >>> from resilient_api.request import resolve_url
        >>> resolve_url("http://localhost:3001", "/api/songs")
        'http://localhost:3001/api/songs'
        >>> resolve_url("http://localhost:3001/", "api/songs")
        'http://localhost:3001/api/songs'
        >>> resolve_url("http://localhost:3001", "https://cdn.example.com/a.json")
        'https://cdn.example.com/a.json'

        ```
    """
    if httpx.URL(path).is_absolute_url:
        return path
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _serialize_body(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="backslashreplace")
    if isinstance(body, str):
        return body
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)


def canonical_key(method: str, url: str, body: Any = None) -> str:
    r"""Build the deduplication key of a request.

    The key is derived from the method, the absolute URL and the
    serialized body (JSON with sorted keys), so two requests with the
    same key are interchangeable for read semantics.

    Example:
        ```pycon
        >>> from resilient_api.request import canonical_key
        >>> canonical_key("GET", "http://localhost:3001/api/songs")
        'GET:http://localhost:3001/api/songs:'
        >>> canonical_key("POST", "http://localhost:3001/api/search", {"q": "jazz", "limit": 5})
        'POST:http://localhost:3001/api/search:{"limit":5,"q":"jazz"}'

        ```
    """
    return f"{method.upper()}:{url}:{_serialize_body(body)}"
