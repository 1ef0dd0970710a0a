"""Embedding backends and the rate-limited embedding stage."""

from __future__ import annotations

import asyncio
import hashlib
import math
import re
from array import array
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

import httpx

from repo_rover.core.logging import get_logger
from repo_rover.core.metrics import ITEM_FAILURES
from repo_rover.errors import EmbeddingError
from repo_rover.ingest.types import Chunk, VectorRecord
from repo_rover.utils.ids import VectorIdFactory

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+")


class Embedder(Protocol):
    @property
    def dim(self) -> int: ...

    async def embed(self, text: str) -> list[float]: ...


@dataclass(slots=True)
class EmbeddingBatch:
    vectors: list[list[float]]
    model: str
    dim: int


class HashedEmbeddingModel:
    """Local hashed bag-of-words embedding with deterministic output."""

    def __init__(self, model_name: str = "hashed", dim: int = 384) -> None:
        self.model_name = model_name
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Iterable[str]) -> EmbeddingBatch:
        vectors: list[list[float]] = []
        for text in texts:
            vector = [0.0] * self._dim
            for token in _tokenize(text):
                vector[_hash_token(token, self._dim)] += 1.0
            _normalize(vector)
            vectors.append(vector)
        return EmbeddingBatch(vectors=vectors, model=self.model_name, dim=self._dim)

    async def embed(self, text: str) -> list[float]:
        return self.encode([text]).vectors[0]


class GeminiEmbeddingModel:
    """Client for the Generative Language ``embedContent`` endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        model_name: str = "text-embedding-004",
        dim: int = 768,
        api_url: str = "https://generativelanguage.googleapis.com/v1beta",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.model_name = model_name
        self._dim = dim
        self.api_url = api_url.rstrip("/")

    @property
    def dim(self) -> int:
        return self._dim

    async def embed(self, text: str) -> list[float]:
        if not self.api_key:
            raise EmbeddingError("Gemini API key is not configured")
        response = await self.client.post(
            f"{self.api_url}/models/{self.model_name}:embedContent",
            params={"key": self.api_key},
            json={
                "model": f"models/{self.model_name}",
                "content": {"parts": [{"text": text}]},
            },
        )
        if response.is_error:
            raise EmbeddingError(f"Embedding request failed with status {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response was not JSON") from exc
        values = (payload.get("embedding") or {}).get("values")
        if not values:
            raise EmbeddingError("Embedding response carried no values")
        if len(values) != self._dim:
            raise EmbeddingError(f"Expected {self._dim} dimensions, got {len(values)}")
        return [float(value) for value in values]


class EmbeddingStage:
    """Turn chunks into vector records, dropping the chunks that fail.

    Every call to the embedder is preceded by a fixed sleep, a crude client
    side throttle for a remote rate limit that cannot be observed locally.
    """

    def __init__(
        self,
        embedder: Embedder,
        id_factory: VectorIdFactory | None = None,
        delay_seconds: float = 1.0,
    ) -> None:
        self.embedder = embedder
        self.id_factory = id_factory or VectorIdFactory()
        self.delay_seconds = delay_seconds

    async def embed_all(self, chunks: Sequence[Chunk]) -> list[VectorRecord]:
        results = await asyncio.gather(*(self._embed_one(chunk) for chunk in chunks))
        return [record for record in results if record is not None]

    async def _embed_one(self, chunk: Chunk) -> VectorRecord | None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        try:
            vector = await self.embedder.embed(chunk.text)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error embedding chunk of %s: %s", chunk.source_path, exc)
            ITEM_FAILURES.labels(stage="embedding").inc()
            return None
        return VectorRecord(
            id=self.id_factory.next_id(chunk.source_path, chunk.text),
            vector=vector,
            metadata={
                "path": chunk.source_path,
                "content": chunk.text,
                "repository_key": chunk.repository_key,
            },
        )


def as_bytes(vector: Sequence[float]) -> bytes:
    return array("f", vector).tobytes()


def from_bytes(blob: bytes) -> list[float]:
    floats = array("f")
    floats.frombytes(blob)
    return list(floats)


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "Embedder",
    "EmbeddingBatch",
    "HashedEmbeddingModel",
    "GeminiEmbeddingModel",
    "EmbeddingStage",
    "as_bytes",
    "from_bytes",
]
