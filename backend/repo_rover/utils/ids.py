"""ID helpers."""

from __future__ import annotations

import itertools
import uuid

from repo_rover.utils.hashing import sha256_text


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


class VectorIdFactory:
    """Issue vector ids as ``<namespace>-<counter>-<content hash>``.

    One factory is created per ingestion run, so the namespace separates runs
    and the counter separates chunks within a run. Re-ingesting the same file
    therefore adds new vectors instead of overwriting the previous ones.
    """

    def __init__(self, namespace: str | None = None) -> None:
        self.namespace = namespace or new_id()[:12]
        self._counter = itertools.count()

    def next_id(self, path: str, content: str) -> str:
        digest = sha256_text(f"{path}\0{content}")[:16]
        return f"{self.namespace}-{next(self._counter):06d}-{digest}"


__all__ = ["new_id", "VectorIdFactory"]
