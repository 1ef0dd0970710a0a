"""Tests for retrieval utilities."""

from __future__ import annotations

from pathlib import Path

import pytest

from repo_rover.db.sqlite import SQLiteDatabase
from repo_rover.ingest.embeddings import HashedEmbeddingModel
from repo_rover.ingest.types import VectorRecord
from repo_rover.retrieval.search import RetrievalEngine
from repo_rover.retrieval.vector_index import VectorIndex

REPO_A = "https://github.com/octo/a"
REPO_B = "https://github.com/octo/b"


def _record(record_id: str, vector: list[float], repository_key: str, path: str = "x.py") -> VectorRecord:
    return VectorRecord(
        id=record_id,
        vector=vector,
        metadata={"path": path, "content": f"content of {record_id}", "repository_key": repository_key},
    )


def test_vector_index_basic() -> None:
    index = VectorIndex(dim=3)
    index.upsert([_record("a", [1.0, 0.0, 0.0], REPO_A), _record("b", [0.0, 1.0, 0.0], REPO_A)])
    results = index.search([1.0, 0.0, 0.0], top_k=1)
    assert results
    assert results[0].record.id == "a"
    assert results[0].score == pytest.approx(1.0)


def test_scoped_search_never_crosses_repositories() -> None:
    index = VectorIndex(dim=3)
    index.upsert([_record(f"a{i}", [1.0, 0.1 * i, 0.0], REPO_A) for i in range(3)])
    index.upsert([_record(f"b{i}", [1.0, 0.0, 0.0], REPO_B) for i in range(10)])

    results = index.search([1.0, 0.0, 0.0], top_k=5, repository_key=REPO_A)
    assert len(results) == 3
    assert {result.record.repository_key for result in results} == {REPO_A}
    assert [result.score for result in results] == sorted((result.score for result in results), reverse=True)

    unscoped = index.search([1.0, 0.0, 0.0], top_k=20)
    assert len(unscoped) == 13


def test_dimension_mismatch_rejected() -> None:
    index = VectorIndex(dim=3)
    with pytest.raises(ValueError):
        index.upsert([_record("a", [1.0, 0.0], REPO_A)])
    index.upsert([_record("a", [1.0, 0.0, 0.0], REPO_A)])
    with pytest.raises(ValueError):
        index.search([1.0, 0.0])


def test_index_survives_rebuild(tmp_path: Path) -> None:
    db = SQLiteDatabase(tmp_path / "vectors.db")
    db.ensure_schema()
    index = VectorIndex(dim=3, db=db)
    index.upsert([_record("a", [1.0, 0.0, 0.0], REPO_A, path="src/a.py")])

    reloaded = VectorIndex(dim=3, db=db)
    reloaded.rebuild()
    assert reloaded.size == 1
    hit = reloaded.search([1.0, 0.0, 0.0], top_k=1, repository_key=REPO_A)[0]
    assert hit.record.metadata["path"] == "src/a.py"
    assert hit.record.vector == pytest.approx([1.0, 0.0, 0.0])
    assert reloaded.count(REPO_B) == 0
    db.close()


@pytest.mark.asyncio
async def test_retrieve_scoped_to_target_repository() -> None:
    model = HashedEmbeddingModel(dim=64)
    index = VectorIndex(dim=64)
    target = ["def parse_config(path)", "class ConfigLoader", "config defaults"]
    other = [f"config helper {i}" for i in range(10)]
    index.upsert([_record(f"a{i}", model.encode([text]).vectors[0], REPO_A) for i, text in enumerate(target)])
    index.upsert([_record(f"b{i}", model.encode([text]).vectors[0], REPO_B) for i, text in enumerate(other)])

    engine = RetrievalEngine(index, model)
    matches = await engine.retrieve("config", top_k=5, repository_key=REPO_A)

    assert 0 < len(matches) <= 3
    assert {match.repository_key for match in matches} == {REPO_A}


@pytest.mark.asyncio
async def test_retrieve_from_empty_repository_returns_nothing() -> None:
    model = HashedEmbeddingModel(dim=16)
    index = VectorIndex(dim=16)
    index.upsert([_record("b0", model.encode(["anything"]).vectors[0], REPO_B)])

    assert await RetrievalEngine(index, model).retrieve("anything", top_k=15, repository_key=REPO_A) == []


@pytest.mark.asyncio
async def test_min_score_filters_weak_matches() -> None:
    index = VectorIndex(dim=2)
    index.upsert([_record("a", [1.0, 0.0], REPO_A), _record("b", [0.0, 1.0], REPO_A)])

    class FixedEmbedder:
        dim = 2

        async def embed(self, text: str) -> list[float]:
            return [1.0, 0.0]

    matches = await RetrievalEngine(index, FixedEmbedder(), min_score=0.5).retrieve("q", top_k=5, repository_key=REPO_A)
    assert [match.content for match in matches] == ["content of a"]


def test_zero_query_vector_matches_nothing() -> None:
    index = VectorIndex(dim=2)
    index.upsert([_record("a", [1.0, 0.0], REPO_A)])
    assert index.search([0.0, 0.0], top_k=5) == []


@pytest.mark.asyncio
async def test_query_without_word_tokens_returns_no_context() -> None:
    model = HashedEmbeddingModel(dim=16)
    index = VectorIndex(dim=16)
    index.upsert([_record(f"a{i}", model.encode([f"def handler_{i}(): pass"]).vectors[0], REPO_A) for i in range(5)])

    assert await RetrievalEngine(index, model).retrieve("???", top_k=15, repository_key=REPO_A) == []
