"""Shared FastAPI dependencies.

This module is the composition root: it builds the long-lived handles once
and passes them explicitly into each pipeline stage.
"""

from __future__ import annotations

from functools import lru_cache

import httpx
from fastapi import Depends, Header, HTTPException

from repo_rover.core.config import Settings, get_settings
from repo_rover.core.progress import ProgressBroadcaster
from repo_rover.db.conversations import ConversationLog
from repo_rover.db.sqlite import SQLiteDatabase
from repo_rover.ingest.chunker import TextChunker
from repo_rover.ingest.crawler import RepositoryCrawler
from repo_rover.ingest.embeddings import Embedder, GeminiEmbeddingModel, HashedEmbeddingModel
from repo_rover.ingest.exclusions import ExclusionFilter
from repo_rover.ingest.fetcher import ContentFetcher
from repo_rover.ingest.freshness import FreshnessGate
from repo_rover.ingest.pipeline import IngestPipeline
from repo_rover.ingest.upsert import VectorUpsertStage
from repo_rover.retrieval import GeminiGenerator, QueryService, RetrievalEngine, TextGenerator, VectorIndex

_DB: SQLiteDatabase | None = None
_HTTP_CLIENT: httpx.AsyncClient | None = None
_PROGRESS: ProgressBroadcaster | None = None
_EMBEDDER: Embedder | None = None
_VECTOR_INDEX: VectorIndex | None = None
_PIPELINE: IngestPipeline | None = None
_QUERY_SERVICE: QueryService | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        db = SQLiteDatabase(get_app_settings().db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_http_client() -> httpx.AsyncClient:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is None:
        _HTTP_CLIENT = httpx.AsyncClient(follow_redirects=True)
    return _HTTP_CLIENT


def get_progress() -> ProgressBroadcaster:
    global _PROGRESS
    if _PROGRESS is None:
        _PROGRESS = ProgressBroadcaster()
    return _PROGRESS


def get_conversation_log() -> ConversationLog:
    return ConversationLog(get_database())


def get_embedder() -> Embedder:
    global _EMBEDDER
    if _EMBEDDER is None:
        settings = get_app_settings()
        if settings.embedding_backend == "gemini":
            _EMBEDDER = GeminiEmbeddingModel(
                client=get_http_client(),
                api_key=settings.gemini_api_key,
                model_name=settings.embedding_model,
                dim=settings.embedding_dim,
                api_url=settings.gemini_api_url,
            )
        else:
            _EMBEDDER = HashedEmbeddingModel(dim=settings.embedding_dim)
    return _EMBEDDER


def get_vector_index() -> VectorIndex:
    global _VECTOR_INDEX
    if _VECTOR_INDEX is None:
        index = VectorIndex(dim=get_embedder().dim, db=get_database())
        index.rebuild()
        _VECTOR_INDEX = index
    return _VECTOR_INDEX


def get_text_generator() -> TextGenerator:
    settings = get_app_settings()
    return GeminiGenerator(
        client=get_http_client(),
        api_key=settings.gemini_api_key,
        model_name=settings.generation_model,
        api_url=settings.gemini_api_url,
    )


def get_ingest_pipeline() -> IngestPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        settings = get_app_settings()
        client = get_http_client()
        progress = get_progress()
        conversations = get_conversation_log()
        _PIPELINE = IngestPipeline(
            crawler=RepositoryCrawler(
                client=client,
                exclusion_filter=ExclusionFilter.from_settings(settings),
                api_url=settings.github_api_url,
                token=settings.github_token,
                progress=progress,
            ),
            fetcher=ContentFetcher(client=client, concurrency=settings.fetch_concurrency, progress=progress),
            freshness=FreshnessGate(conversations, window_ms=settings.freshness_window_ms),
            chunker=TextChunker(settings.chunk_size, settings.chunk_overlap),
            embedder=get_embedder(),
            upsert_stage=VectorUpsertStage(get_vector_index(), progress=progress),
            conversations=conversations,
            progress=progress,
            files_per_batch=settings.embed_files_per_batch,
            embed_delay_seconds=settings.embed_delay_seconds,
        )
    return _PIPELINE


def get_query_service() -> QueryService:
    global _QUERY_SERVICE
    if _QUERY_SERVICE is None:
        settings = get_app_settings()
        _QUERY_SERVICE = QueryService(
            retrieval=RetrievalEngine(get_vector_index(), get_embedder(), min_score=settings.min_score),
            generator=get_text_generator(),
            conversations=get_conversation_log(),
            top_k=settings.chat_top_k,
            max_context_chars=settings.max_context_chars,
        )
    return _QUERY_SERVICE


def get_owner_id(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided or invalid format.")
    token = authorization[len("Bearer ") :].strip()
    owner_id = settings.api_tokens.get(token) if token else None
    if owner_id is None:
        raise HTTPException(status_code=401, detail="Invalid token.")
    return owner_id


async def close_resources() -> None:
    """Close the shared client and database and forget every cached handle."""
    global _DB, _HTTP_CLIENT, _PROGRESS, _EMBEDDER, _VECTOR_INDEX, _PIPELINE, _QUERY_SERVICE
    if _HTTP_CLIENT is not None:
        await _HTTP_CLIENT.aclose()
    if _DB is not None:
        _DB.close()
    _DB = None
    _HTTP_CLIENT = None
    _PROGRESS = None
    _EMBEDDER = None
    _VECTOR_INDEX = None
    _PIPELINE = None
    _QUERY_SERVICE = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_http_client",
    "get_progress",
    "get_conversation_log",
    "get_embedder",
    "get_vector_index",
    "get_text_generator",
    "get_ingest_pipeline",
    "get_query_service",
    "get_owner_id",
    "close_resources",
]
