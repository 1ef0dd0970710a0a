"""Concurrent download of file contents."""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from typing import AsyncContextManager, Sequence

import httpx

from repo_rover.core.logging import get_logger
from repo_rover.core.metrics import ITEM_FAILURES
from repo_rover.core.progress import NullProgress, ProgressSink
from repo_rover.ingest.types import FileDescriptor, FileRecord

logger = get_logger(__name__)


class ContentFetcher:
    """Resolve descriptors to text, dropping the ones that fail.

    ``concurrency`` caps the number of downloads in flight; ``None`` launches
    every download at once.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        concurrency: int | None = None,
        progress: ProgressSink | None = None,
    ) -> None:
        if concurrency is not None and concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.client = client
        self.concurrency = concurrency
        self.progress = progress or NullProgress()

    async def fetch(self, descriptors: Sequence[FileDescriptor], repository_key: str) -> list[FileRecord]:
        slots = asyncio.Semaphore(self.concurrency) if self.concurrency else None
        results = await asyncio.gather(
            *(self._fetch_one(descriptor, repository_key, slots) for descriptor in descriptors)
        )
        records = [record for record in results if record is not None]
        logger.info("Downloaded %s of %s files for %s", len(records), len(descriptors), repository_key)
        return records

    async def _fetch_one(
        self,
        descriptor: FileDescriptor,
        repository_key: str,
        slots: asyncio.Semaphore | None,
    ) -> FileRecord | None:
        guard: AsyncContextManager = slots if slots is not None else nullcontext()
        async with guard:
            try:
                content = await self._download(descriptor)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to download %s: %s", descriptor.path, exc)
                ITEM_FAILURES.labels(stage="download").inc()
                self.progress.emit(f"Failed to download {descriptor.path}")
                return None
        self.progress.emit(f"Downloaded {descriptor.path}")
        return FileRecord(
            name=descriptor.name,
            path=descriptor.path,
            content_url=descriptor.content_url,
            content=content,
            repository_key=repository_key,
        )

    async def _download(self, descriptor: FileDescriptor) -> str:
        if not descriptor.content_url:
            raise ValueError(f"No content URL for {descriptor.path}")
        response = await self.client.get(descriptor.content_url)
        response.raise_for_status()
        return response.text


__all__ = ["ContentFetcher"]
