r"""Share the outcome of identical concurrent read requests.

The registry maps a canonical request key to the task running that
request. A caller issuing a request whose key is already registered
awaits the existing task instead of starting a new attempt sequence.
Entries disappear as soon as their task settles, or once they are older
than the dedup window, whichever comes first.
"""

from __future__ import annotations

__all__ = ["InFlightRegistry", "PendingEntry"]

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from resilient_api.core.config import DEFAULT_DEDUP_WINDOW

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEntry(Generic[T]):
    r"""A request in flight.

    Attributes:
        key: The canonical key of the request.
        outcome: The task producing the shared outcome.
        created_at: Monotonic timestamp of the registration.
    """

    key: str
    outcome: asyncio.Task[T]
    created_at: float


class InFlightRegistry(Generic[T]):
    r"""Registry of in-flight requests keyed by canonical key.

    All mutations happen synchronously between two suspension points of
    the event loop, so two callers can never both decide to create an
    entry for the same key: the second one always observes the first
    one's entry.

    Args:
        window: Maximum age in seconds of an entry. Older entries are
            discarded on the next access even if their task has not
            settled.
        clock: Monotonic clock returning seconds.

    Example:
        ```pycon
        >>> import asyncio
        >>> from resilient_api.registry import InFlightRegistry
        >>> async def main() -> list[int]:
        ...     registry = InFlightRegistry(window=1.0)
        ...     calls = []
        ...     async def fetch() -> int:
        ...         calls.append(1)
        ...         await asyncio.sleep(0)
        ...         return 42
        ...     first = registry.get_or_create("GET:/songs:", fetch)
        ...     second = registry.get_or_create("GET:/songs:", fetch)
        ...     return [await first, await second, len(calls)]
        ...
        >>> asyncio.run(main())
        [42, 42, 1]

        ```
    """

    def __init__(
        self,
        window: float = DEFAULT_DEDUP_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window <= 0:
            msg = f"window must be > 0, got {window}"
            raise ValueError(msg)
        self.window = window
        self._clock = clock
        self._entries: dict[str, PendingEntry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(window={self.window}, pending={len(self)})"

    def get(self, key: str) -> PendingEntry[T] | None:
        r"""Return the live entry for ``key``, if any."""
        self.sweep()
        return self._entries.get(key)

    def get_or_create(
        self, key: str, factory: Callable[[], Coroutine[Any, Any, T]]
    ) -> asyncio.Task[T]:
        r"""Return the task shared by all callers of ``key``.

        Args:
            key: The canonical key of the request.
            factory: Called without arguments to build the coroutine when
                no live entry exists. Not called otherwise.

        Returns:
            The task producing the outcome. Callers should await it
            through ``asyncio.shield`` so that one cancelled caller does
            not cancel the request for the others.
        """
        entry = self.get(key)
        if entry is not None:
            logger.debug(f"Joining in-flight request {key!r}")
            return entry.outcome

        task = asyncio.ensure_future(factory())
        self._entries[key] = PendingEntry(key=key, outcome=task, created_at=self._clock())
        task.add_done_callback(lambda done: self._discard(key, done))
        return task

    def sweep(self) -> int:
        r"""Discard entries older than the dedup window.

        Returns:
            The number of discarded entries.
        """
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if now - entry.created_at > self.window
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Discarded {len(expired)} expired in-flight request(s)")
        return len(expired)

    def clear(self) -> None:
        r"""Forget every entry.

        Tasks already handed out keep running for the callers awaiting
        them; the next request for any key starts a fresh attempt
        sequence.
        """
        self._entries.clear()

    def _discard(self, key: str, task: asyncio.Task[T]) -> None:
        entry = self._entries.get(key)
        # The entry may have been replaced after a clear() or a sweep
        if entry is not None and entry.outcome is task:
            del self._entries[key]
