"""Retrieval orchestration components."""

from .vector_index import SearchResult, VectorIndex
from .search import RetrievalEngine
from .generation import GeminiGenerator, TextGenerator
from .answer import Answer, QueryService

__all__ = [
    "SearchResult",
    "VectorIndex",
    "RetrievalEngine",
    "GeminiGenerator",
    "TextGenerator",
    "Answer",
    "QueryService",
]
