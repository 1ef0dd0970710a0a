"""Ingest pipeline orchestration."""

from __future__ import annotations

import asyncio
from typing import Sequence

from repo_rover.core.logging import bind_context, get_logger
from repo_rover.core.metrics import INGEST_RUNS
from repo_rover.core.progress import NullProgress, ProgressSink
from repo_rover.db.conversations import ConversationLog
from repo_rover.errors import IngestionError
from repo_rover.ingest.chunker import TextChunker
from repo_rover.ingest.crawler import RepositoryCrawler
from repo_rover.ingest.embeddings import Embedder, EmbeddingStage
from repo_rover.ingest.fetcher import ContentFetcher
from repo_rover.ingest.freshness import FreshnessGate
from repo_rover.ingest.repository import parse_repository_url
from repo_rover.ingest.types import FileRecord, IngestStats
from repo_rover.ingest.upsert import VectorUpsertStage
from repo_rover.utils.ids import VectorIdFactory

logger = get_logger(__name__)


class IngestPipeline:
    """Coordinate crawl, download, chunking, embedding and upsert for one repository.

    Files are embedded in groups of ``files_per_batch``: the files of a group
    run concurrently and the next group starts only once the whole group is
    written. Per-item failures are dropped by the stages; anything else aborts
    the run with :class:`IngestionError`. A run that indexes no file is not
    recorded, so the freshness gate lets the next request scan again.
    """

    def __init__(
        self,
        crawler: RepositoryCrawler,
        fetcher: ContentFetcher,
        freshness: FreshnessGate,
        chunker: TextChunker,
        embedder: Embedder,
        upsert_stage: VectorUpsertStage,
        conversations: ConversationLog,
        progress: ProgressSink | None = None,
        files_per_batch: int = 5,
        embed_delay_seconds: float = 1.0,
    ) -> None:
        if files_per_batch < 1:
            raise ValueError("files_per_batch must be at least 1")
        self.crawler = crawler
        self.fetcher = fetcher
        self.freshness = freshness
        self.chunker = chunker
        self.embedder = embedder
        self.upsert_stage = upsert_stage
        self.conversations = conversations
        self.progress = progress or NullProgress()
        self.files_per_batch = files_per_batch
        self.embed_delay_seconds = embed_delay_seconds

    async def ingest(self, repo_url: str, owner_id: str) -> IngestStats:
        repository = parse_repository_url(repo_url)
        stats = IngestStats(repository_key=repository.key)
        log = bind_context(logger, repository=repository.key, owner=owner_id)

        if self.freshness.should_skip(owner_id, repository.key):
            log.info("Skipping scan: ingested recently")
            self.progress.emit(f"{repository.key} was indexed recently, skipping scan")
            INGEST_RUNS.labels(status="skipped").inc()
            stats.skipped = True
            return stats

        log.info("Starting scan")
        self.progress.emit(f"Starting scan: {repository.key}")
        try:
            descriptors = await self.crawler.walk(repository.owner, repository.name)
            stats.files_found = len(descriptors)
            self.progress.emit(f"Found {len(descriptors)} files. Downloading content...")

            records = await self.fetcher.fetch(descriptors, repository.key)
            stats.files_downloaded = len(records)
            self.progress.emit(f"Downloaded {len(records)} files. Indexing...")

            await self._index(records, stats)
            if stats.files_indexed:
                self.conversations.record_ingestion(owner_id, repository.key)
            else:
                log.warning("Nothing indexed; next request will scan again")
        except Exception as exc:
            log.exception("Ingestion failed: %s", exc)
            INGEST_RUNS.labels(status="failed").inc()
            self.progress.emit(f"Ingestion failed for {repository.key}")
            raise IngestionError(f"Ingestion of {repository.key} failed") from exc

        INGEST_RUNS.labels(status="completed").inc()
        log.info("Stored %s vectors from %s files", stats.vectors_written, stats.files_indexed)
        self.progress.emit(
            f"Done: indexed {stats.files_indexed} files ({stats.vectors_written} chunks) from {repository.key}"
        )
        return stats

    async def _index(self, records: Sequence[FileRecord], stats: IngestStats) -> None:
        embedding_stage = EmbeddingStage(
            self.embedder,
            id_factory=VectorIdFactory(),
            delay_seconds=self.embed_delay_seconds,
        )
        for offset in range(0, len(records), self.files_per_batch):
            group = records[offset : offset + self.files_per_batch]
            written = await asyncio.gather(*(self._index_file(record, embedding_stage) for record in group))
            for count in written:
                if count:
                    stats.files_indexed += 1
                    stats.vectors_written += count

    async def _index_file(self, record: FileRecord, embedding_stage: EmbeddingStage) -> int:
        chunks = self.chunker.split_record(record)
        if not chunks:
            logger.debug("No chunks for %s", record.path)
            return 0
        vectors = await embedding_stage.embed_all(chunks)
        if not vectors:
            logger.warning("Every chunk of %s failed to embed", record.path)
            return 0
        return self.upsert_stage.upsert(vectors, path=record.path)


__all__ = ["IngestPipeline"]
