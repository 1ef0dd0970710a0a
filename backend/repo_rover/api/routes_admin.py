"""Administrative routes for Repo Rover."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from repo_rover.api.dependencies import get_vector_index
from repo_rover.core.metrics import metrics_response
from repo_rover.retrieval.vector_index import VectorIndex

router = APIRouter()


@router.get("/health", summary="Liveness check")
async def health(index: VectorIndex = Depends(get_vector_index)) -> dict[str, object]:
    return {"ok": True, "vectors": index.size}


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
