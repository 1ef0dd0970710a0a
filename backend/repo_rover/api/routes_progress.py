"""Server-sent event stream of ingestion progress."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from repo_rover.api.dependencies import get_owner_id, get_progress
from repo_rover.core.progress import ProgressBroadcaster

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


def format_event(message: str) -> str:
    lines = message.splitlines() or [""]
    return "".join(f"data: {line}\n" for line in lines) + "\n"


async def event_stream(
    request: Request,
    progress: ProgressBroadcaster,
    keepalive: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    with progress.subscribe() as queue:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                message = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_event(message)


@router.get("/progress", summary="Follow ingestion progress")
async def stream_progress(
    request: Request,
    _owner_id: str = Depends(get_owner_id),
    progress: ProgressBroadcaster = Depends(get_progress),
) -> StreamingResponse:
    return StreamingResponse(
        event_stream(request, progress),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


__all__ = ["router", "format_event", "event_stream"]
