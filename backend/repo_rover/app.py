"""FastAPI application setup for Repo Rover."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repo_rover.api.dependencies import (
    close_resources,
    get_app_settings,
    get_database,
    get_embedder,
    get_ingest_pipeline,
    get_query_service,
    get_vector_index,
)
from repo_rover.api.routes_admin import router as admin_router
from repo_rover.api.routes_ingest import router as ingest_router
from repo_rover.api.routes_progress import router as progress_router
from repo_rover.api.routes_query import router as query_router
from repo_rover.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title="Repo Rover",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])
app.include_router(query_router, prefix="", tags=["chat"])
app.include_router(progress_router, prefix="", tags=["progress"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_embedder()
    get_vector_index()
    get_ingest_pipeline()
    get_query_service()


@app.on_event("shutdown")
async def shutdown() -> None:
    await close_resources()
