"""One-way progress channel for ingestion runs.

Delivery is at-most-once: a message reaches the listeners subscribed at the
moment it is emitted and nobody else. Nothing is buffered for listeners that
connect later, so a client that subscribes mid-run only sees the remainder of
the run.
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Iterator, Protocol

from repo_rover.core.logging import get_logger

logger = get_logger(__name__)


class ProgressSink(Protocol):
    def emit(self, message: str) -> None: ...


class ProgressBroadcaster:
    """Fan out progress strings to every connected listener queue."""

    def __init__(self) -> None:
        self._listeners: set[asyncio.Queue[str]] = set()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, message: str) -> None:
        logger.debug("progress: %s", message)
        for queue in list(self._listeners):
            queue.put_nowait(message)

    @contextmanager
    def subscribe(self) -> Iterator[asyncio.Queue[str]]:
        queue: asyncio.Queue[str] = asyncio.Queue()
        self._listeners.add(queue)
        try:
            yield queue
        finally:
            self._listeners.discard(queue)


class NullProgress:
    """Sink that drops every message."""

    def emit(self, message: str) -> None:
        return None


__all__ = ["ProgressSink", "ProgressBroadcaster", "NullProgress"]
