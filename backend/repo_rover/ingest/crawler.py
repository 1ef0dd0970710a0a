"""Recursive traversal of a hosted repository's directory tree."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from repo_rover.core.logging import get_logger
from repo_rover.core.metrics import ITEM_FAILURES
from repo_rover.core.progress import NullProgress, ProgressSink
from repo_rover.ingest.exclusions import ExclusionFilter
from repo_rover.ingest.types import FileDescriptor

logger = get_logger(__name__)


class RepositoryCrawler:
    """Walk the GitHub contents API depth-first and collect indexable files."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        exclusion_filter: ExclusionFilter,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        progress: ProgressSink | None = None,
    ) -> None:
        self.client = client
        self.exclusion_filter = exclusion_filter
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.progress = progress or NullProgress()

    async def walk(self, owner: str, repo: str, path: str = "") -> list[FileDescriptor]:
        """Return descriptors for every indexable file below ``path``.

        A listing that fails (permission, rate limit, missing path) contributes
        nothing; the rest of the tree is still walked. Sibling directories from
        one listing are walked concurrently and their results are concatenated
        in listing order.
        """
        try:
            entries = await self._list(owner, repo, path)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Listing failed for %s/%s:%s: %s", owner, repo, path or "/", exc)
            ITEM_FAILURES.labels(stage="listing").inc()
            self.progress.emit(f"Skipped {path or '/'}: listing failed")
            return []

        pending: list[Any] = []
        for entry in entries:
            entry_type = entry.get("type")
            entry_path = entry.get("path") or ""
            if entry_type == "dir":
                if self.exclusion_filter.is_indexable(entry_path, is_dir=True):
                    pending.append(self.walk(owner, repo, entry_path))
            elif entry_type == "file":
                if self.exclusion_filter.is_indexable(entry_path):
                    logger.debug("Found %s", entry_path)
                    pending.append(
                        [
                            FileDescriptor(
                                name=entry.get("name") or entry_path.rsplit("/", 1)[-1],
                                path=entry_path,
                                content_url=entry.get("download_url"),
                            )
                        ]
                    )

        subtrees = [item for item in pending if not isinstance(item, list)]
        walked = iter(await asyncio.gather(*subtrees)) if subtrees else iter(())
        files: list[FileDescriptor] = []
        for item in pending:
            files.extend(item if isinstance(item, list) else next(walked))
        return files

    async def _list(self, owner: str, repo: str, path: str) -> list[dict[str, Any]]:
        url = f"{self.api_url}/repos/{owner}/{repo}/contents/{path}"
        response = await self.client.get(url, headers=self._headers())
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict):
            # the path points at a single file rather than a directory
            return [payload]
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected listing payload for {path or '/'}")
        return payload

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


__all__ = ["RepositoryCrawler"]
