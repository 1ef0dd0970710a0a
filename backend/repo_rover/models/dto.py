"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    repo_url: str = Field(min_length=1, description="GitHub repository URL")


class IngestResponse(BaseModel):
    repository_key: str
    skipped: bool
    files_found: int
    files_downloaded: int
    files_indexed: int
    vectors_written: int


class ChatRequest(BaseModel):
    question: str = Field(min_length=1)
    repo_url: str = Field(min_length=1)


class ChatResponse(BaseModel):
    answer: str
    sources: list[str]


class MessageResponse(BaseModel):
    role: Literal["user", "bot"]
    text: str
    timestamp: datetime


class HistoryResponse(BaseModel):
    repository_key: str
    messages: list[MessageResponse]


class RepositorySummary(BaseModel):
    repository_key: str
    last_accessed: datetime


__all__ = [
    "IngestRequest",
    "IngestResponse",
    "ChatRequest",
    "ChatResponse",
    "MessageResponse",
    "HistoryResponse",
    "RepositorySummary",
]
