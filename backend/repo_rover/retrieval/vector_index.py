"""Vector index abstraction."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from repo_rover.db.sqlite import SQLiteDatabase
from repo_rover.ingest.embeddings import as_bytes, from_bytes
from repo_rover.ingest.types import VectorRecord
from repo_rover.utils.time import now_ms


@dataclass(slots=True)
class SearchResult:
    record: VectorRecord
    score: float


class VectorIndex:
    """In-memory cosine similarity index with write-through SQLite storage.

    Records are partitioned by ``metadata["repository_key"]``; a search with a
    key only ever scores records of that repository.
    """

    def __init__(self, dim: int, db: SQLiteDatabase | None = None) -> None:
        self.dim = dim
        self.db = db
        self._records: dict[str, VectorRecord] = {}
        self._norms: dict[str, float] = {}

    @property
    def size(self) -> int:
        return len(self._records)

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        if not records:
            return 0
        for record in records:
            if len(record.vector) != self.dim:
                raise ValueError("Vector dimension mismatch")
        if self.db is not None:
            now = now_ms()
            with self.db.transaction() as conn:
                conn.executemany(
                    """
                    INSERT OR REPLACE INTO vectors (id, repository_key, path, content, dim, vector, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            record.id,
                            record.metadata.get("repository_key", ""),
                            record.metadata.get("path", ""),
                            record.metadata.get("content", ""),
                            self.dim,
                            as_bytes(record.vector),
                            now,
                        )
                        for record in records
                    ],
                )
        for record in records:
            self._records[record.id] = record
            self._norms[record.id] = _norm(record.vector)
        return len(records)

    def search(
        self,
        vector: Sequence[float],
        top_k: int = 8,
        repository_key: str | None = None,
    ) -> list[SearchResult]:
        if top_k <= 0 or not self._records:
            return []
        if len(vector) != self.dim:
            raise ValueError("Query vector dimension mismatch")
        query_norm = _norm(vector)
        if query_norm == 0:
            # a zero query is equally far from everything
            return []
        scored: list[SearchResult] = []
        for record_id, record in self._records.items():
            if repository_key is not None and record.repository_key != repository_key:
                continue
            denominator = query_norm * self._norms[record_id]
            score = _dot(record.vector, vector) / denominator if denominator else 0.0
            scored.append(SearchResult(record=record, score=score))
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:top_k]

    def count(self, repository_key: str | None = None) -> int:
        if repository_key is None:
            return self.size
        return sum(1 for record in self._records.values() if record.repository_key == repository_key)

    def rebuild(self) -> None:
        """Reload every stored vector of the configured dimension."""
        self._records = {}
        self._norms = {}
        if self.db is None:
            return
        rows = self.db.query(
            "SELECT id, repository_key, path, content, vector FROM vectors WHERE dim = ?",
            [self.dim],
        )
        for row in rows:
            record = VectorRecord(
                id=row["id"],
                vector=from_bytes(row["vector"]),
                metadata={
                    "path": row["path"],
                    "content": row["content"],
                    "repository_key": row["repository_key"],
                },
            )
            self._records[record.id] = record
            self._norms[record.id] = _norm(record.vector)


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    return sum(x * y for x, y in zip(a, b))


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(_dot(vector, vector))


__all__ = ["VectorIndex", "SearchResult"]
