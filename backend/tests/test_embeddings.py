"""Tests for embedding utilities."""

from __future__ import annotations

import time

import httpx
import pytest

from repo_rover.errors import EmbeddingError
from repo_rover.ingest.embeddings import EmbeddingStage, GeminiEmbeddingModel, HashedEmbeddingModel
from repo_rover.ingest.types import Chunk
from repo_rover.utils.ids import VectorIdFactory

REPO_KEY = "https://github.com/octo/demo"


def _chunks(texts: list[str], path: str = "src/app.py") -> list[Chunk]:
    return [Chunk(text=text, source_path=path, repository_key=REPO_KEY, start=0, end=len(text)) for text in texts]


def test_hashed_model_is_normalised() -> None:
    model = HashedEmbeddingModel(dim=32)
    vectors = model.encode(["hello", "world"]).vectors
    assert len(vectors) == 2
    assert all(len(vec) == model.dim for vec in vectors)
    assert abs(sum(value * value for value in vectors[0]) - 1.0) < 1e-6


def test_hashed_model_empty_text_is_zero_vector() -> None:
    vector = HashedEmbeddingModel(dim=16).encode(["   "]).vectors[0]
    assert vector == [0.0] * 16


@pytest.mark.asyncio
async def test_failed_chunk_is_dropped(flaky_embedder_factory) -> None:
    embedder = flaky_embedder_factory(fail_on=("BROKEN",))
    stage = EmbeddingStage(embedder, id_factory=VectorIdFactory("run"), delay_seconds=0)
    records = await stage.embed_all(_chunks(["def ok(): pass", "BROKEN chunk", "class Fine: pass"]))

    assert [record.metadata["content"] for record in records] == ["def ok(): pass", "class Fine: pass"]
    assert len(embedder.calls) == 3


@pytest.mark.asyncio
async def test_records_carry_metadata_and_unique_ids(flaky_embedder_factory) -> None:
    stage = EmbeddingStage(flaky_embedder_factory(), id_factory=VectorIdFactory("run"), delay_seconds=0)
    records = await stage.embed_all(_chunks(["same text", "same text", "same text"]))

    assert len({record.id for record in records}) == 3
    for record in records:
        assert record.id.startswith("run-")
        assert record.metadata == {"path": "src/app.py", "content": "same text", "repository_key": REPO_KEY}


def test_id_factories_do_not_collide_across_runs() -> None:
    first = VectorIdFactory()
    second = VectorIdFactory()
    assert first.next_id("a.py", "text") != second.next_id("a.py", "text")


def test_id_is_counter_plus_content_hash() -> None:
    factory = VectorIdFactory("ns")
    first = factory.next_id("a.py", "text")
    second = factory.next_id("a.py", "text")
    assert first.split("-")[1] == "000000"
    assert second.split("-")[1] == "000001"
    assert first.split("-")[2] == second.split("-")[2]


@pytest.mark.asyncio
async def test_gemini_embedding_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        model = GeminiEmbeddingModel(client, api_key="k", dim=3)
        vector = await model.embed("hello")

    assert vector == [0.1, 0.2, 0.3]
    assert seen[0].url.path.endswith("/models/text-embedding-004:embedContent")
    assert seen[0].url.params["key"] == "k"


@pytest.mark.asyncio
async def test_gemini_embedding_errors() -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(429))) as client:
        with pytest.raises(EmbeddingError):
            await GeminiEmbeddingModel(client, api_key="k", dim=3).embed("hello")
        with pytest.raises(EmbeddingError):
            await GeminiEmbeddingModel(client, api_key=None, dim=3).embed("hello")


@pytest.mark.asyncio
async def test_delay_precedes_embedding_call(flaky_embedder_factory) -> None:
    embedder = flaky_embedder_factory()
    stage = EmbeddingStage(embedder, id_factory=VectorIdFactory("run"), delay_seconds=0.05)

    started = time.perf_counter()
    records = await stage.embed_all(_chunks(["def ok(): pass", "class Fine: pass"]))
    elapsed = time.perf_counter() - started

    assert len(records) == 2
    assert elapsed >= 0.04
    assert elapsed < 0.5
