"""Repository-scoped similarity retrieval."""

from __future__ import annotations

from repo_rover.core.logging import get_logger
from repo_rover.ingest.embeddings import Embedder
from repo_rover.ingest.types import RetrievedChunk
from repo_rover.retrieval.vector_index import VectorIndex

logger = get_logger(__name__)


class RetrievalEngine:
    """Embed a query and search the index within one repository.

    An empty result means nothing relevant is indexed; embedding or index
    failures propagate to the caller instead.
    """

    def __init__(self, index: VectorIndex, embedder: Embedder, min_score: float = 0.0) -> None:
        self.index = index
        self.embedder = embedder
        self.min_score = min_score

    async def retrieve(
        self,
        query: str,
        top_k: int,
        repository_key: str | None = None,
    ) -> list[RetrievedChunk]:
        vector = await self.embedder.embed(query)
        hits = self.index.search(vector, top_k=top_k, repository_key=repository_key)
        matches = [
            RetrievedChunk(
                content=hit.record.metadata.get("content", ""),
                path=hit.record.metadata.get("path", ""),
                score=hit.score,
                repository_key=hit.record.repository_key,
            )
            for hit in hits
            if hit.score >= self.min_score
        ]
        logger.info("Found %s matches in %s", len(matches), repository_key or "all repositories")
        return matches


__all__ = ["RetrievalEngine"]
