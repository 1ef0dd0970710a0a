"""Per-file batch writes into the vector index."""

from __future__ import annotations

from typing import Sequence

from repo_rover.core.logging import get_logger
from repo_rover.core.metrics import FILES_INDEXED, VECTORS_WRITTEN
from repo_rover.core.progress import NullProgress, ProgressSink
from repo_rover.ingest.types import VectorRecord
from repo_rover.retrieval.vector_index import VectorIndex

logger = get_logger(__name__)


class VectorUpsertStage:
    def __init__(self, index: VectorIndex, progress: ProgressSink | None = None) -> None:
        self.index = index
        self.progress = progress or NullProgress()

    def upsert(self, records: Sequence[VectorRecord], path: str | None = None) -> int:
        """Write one file's vectors as a single batch and return how many were written."""
        if not records:
            return 0
        source = path or records[0].metadata.get("path", "")
        written = self.index.upsert(records)
        VECTORS_WRITTEN.inc(written)
        FILES_INDEXED.inc()
        logger.info("Uploaded %s chunks for %s", written, source)
        self.progress.emit(f"Indexed {source} ({written} chunks)")
        return written


__all__ = ["VectorUpsertStage"]
