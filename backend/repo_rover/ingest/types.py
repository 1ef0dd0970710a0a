"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class RepositoryRef:
    """Owner/name pair of a hosted repository plus its canonical key."""

    owner: str
    name: str
    key: str


@dataclass(slots=True)
class FileDescriptor:
    """One indexable file found by the crawler."""

    name: str
    path: str
    content_url: str | None


@dataclass(slots=True)
class FileRecord:
    """A descriptor resolved to its text content."""

    name: str
    path: str
    content_url: str | None
    content: str
    repository_key: str


@dataclass(slots=True)
class Chunk:
    """A window of one file's content, ``text == content[start:end]``."""

    text: str
    source_path: str
    repository_key: str
    start: int
    end: int


@dataclass(slots=True)
class VectorRecord:
    id: str
    vector: list[float]
    metadata: dict[str, str]

    @property
    def repository_key(self) -> str | None:
        return self.metadata.get("repository_key")


@dataclass(slots=True)
class RetrievedChunk:
    content: str
    path: str
    score: float
    repository_key: str | None = None


@dataclass(slots=True)
class IngestStats:
    """Aggregated counters for one ingestion run."""

    repository_key: str
    skipped: bool = False
    files_found: int = 0
    files_downloaded: int = 0
    files_indexed: int = 0
    vectors_written: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "repository_key": self.repository_key,
            "skipped": self.skipped,
            "files_found": self.files_found,
            "files_downloaded": self.files_downloaded,
            "files_indexed": self.files_indexed,
            "vectors_written": self.vectors_written,
        }


__all__ = [
    "RepositoryRef",
    "FileDescriptor",
    "FileRecord",
    "Chunk",
    "VectorRecord",
    "RetrievedChunk",
    "IngestStats",
]
