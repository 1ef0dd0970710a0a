"""Ingest API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from repo_rover.api.dependencies import get_ingest_pipeline, get_owner_id
from repo_rover.errors import IngestionError, RepositoryURLError
from repo_rover.ingest.pipeline import IngestPipeline
from repo_rover.models.dto import IngestRequest, IngestResponse

router = APIRouter()


@router.post("", response_model=IngestResponse, summary="Scan and index a repository")
async def trigger_ingest(
    request: IngestRequest,
    owner_id: str = Depends(get_owner_id),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> IngestResponse:
    try:
        stats = await pipeline.ingest(request.repo_url, owner_id)
    except RepositoryURLError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except IngestionError as exc:
        raise HTTPException(status_code=500, detail="Ingestion failed") from exc
    return IngestResponse(**stats.to_dict())
