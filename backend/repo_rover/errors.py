"""Exception types shared across the service."""

from __future__ import annotations


class RepoRoverError(Exception):
    """Base class for service errors."""


class RepositoryURLError(RepoRoverError, ValueError):
    """The supplied repository URL cannot be mapped to an owner and name."""


class InvalidQuestionError(RepoRoverError, ValueError):
    """The question is missing or blank."""


class IngestionError(RepoRoverError):
    """An ingestion run aborted after an error escaped the per-item guards."""


class EmbeddingError(RepoRoverError):
    """The embedding service failed or returned an unusable payload."""


class GenerationError(RepoRoverError):
    """The text-generation service failed or returned no text."""


__all__ = [
    "RepoRoverError",
    "RepositoryURLError",
    "InvalidQuestionError",
    "IngestionError",
    "EmbeddingError",
    "GenerationError",
]
