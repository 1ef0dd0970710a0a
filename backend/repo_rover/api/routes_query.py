"""Chat and conversation history routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from repo_rover.api.dependencies import get_conversation_log, get_owner_id, get_query_service
from repo_rover.core.logging import get_logger
from repo_rover.db.conversations import ConversationLog
from repo_rover.errors import InvalidQuestionError, RepositoryURLError
from repo_rover.ingest.repository import parse_repository_url
from repo_rover.models.dto import (
    ChatRequest,
    ChatResponse,
    HistoryResponse,
    MessageResponse,
    RepositorySummary,
)
from repo_rover.retrieval.answer import QueryService
from repo_rover.utils.time import ms_to_datetime

logger = get_logger(__name__)

router = APIRouter()


@router.post("/chat", response_model=ChatResponse, summary="Ask a question about a repository")
async def chat(
    request: ChatRequest,
    owner_id: str = Depends(get_owner_id),
    service: QueryService = Depends(get_query_service),
) -> ChatResponse:
    try:
        answer = await service.ask(owner_id, request.repo_url, request.question)
    except (RepositoryURLError, InvalidQuestionError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Chat failed for %s: %s", request.repo_url, exc)
        raise HTTPException(status_code=500, detail="Failed to generate answer") from exc
    return ChatResponse(answer=answer.text, sources=answer.sources)


@router.get("/history", response_model=HistoryResponse, summary="Conversation for one repository")
async def history(
    repo_url: str = Query(..., min_length=1),
    owner_id: str = Depends(get_owner_id),
    conversations: ConversationLog = Depends(get_conversation_log),
) -> HistoryResponse:
    try:
        key = parse_repository_url(repo_url).key
    except RepositoryURLError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    messages = conversations.history(owner_id, key)
    return HistoryResponse(
        repository_key=key,
        messages=[
            MessageResponse(role=message.role, text=message.text, timestamp=ms_to_datetime(message.timestamp))
            for message in messages
        ],
    )


@router.get("/repositories", response_model=list[RepositorySummary], summary="Repositories with a conversation")
async def list_repositories(
    owner_id: str = Depends(get_owner_id),
    conversations: ConversationLog = Depends(get_conversation_log),
) -> list[RepositorySummary]:
    return [
        RepositorySummary(repository_key=record.repository_key, last_accessed=ms_to_datetime(record.last_accessed))
        for record in conversations.list_repositories(owner_id)
    ]


__all__ = ["router"]
