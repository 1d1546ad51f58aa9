# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tutor chat endpoints.

Endpoints:
- POST /api/tutor/chat - Send a message, stream the turn's events as SSE
- GET /api/tutor/conversation - Conversation currently in the window
- DELETE /api/tutor/conversation - Forget a student's conversation about a book

Every SSE frame is ``data: <event JSON>``. If the turn fails after it has
started, a final ``{"type": "error", "message": ...}`` frame is sent.
Authentication is handled in front of this service; the student is named
in the request.
"""

import asyncio
import json
import logging
from contextlib import nullcontext
from typing import Any, AsyncIterator

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from booktutor.core.orchestration.cache import CachedAgent, TutorAgentCache
from booktutor.domains.conversation.store import ConversationStore
from booktutor.models.events import ResponseEvent
from booktutor.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tutor", tags=["Tutor"])

KEEPALIVE_FRAME = ": keep-alive\n\n"


class ChatRequest(BaseModel):
    """Inbound student message."""

    student_id: int = Field(description="Student sending the message")
    book_id: int = Field(description="Book being studied")
    message: str = Field(min_length=1, description="Message text")


class ConversationResponse(BaseModel):
    """Messages of a conversation in OpenAI wire format."""

    student_id: int
    book_id: int
    messages: list[dict[str, Any]] = Field(default_factory=list)


def _get_cache(request: Request) -> TutorAgentCache:
    return request.app.state.agent_cache


async def _get_agent(request: Request, student_id: int, book_id: int) -> CachedAgent:
    try:
        return await _get_cache(request).get(student_id, book_id)
    except Exception as e:
        logger.warning(
            "Failed to create tutor agent: student_id=%s, book_id=%s, error=%s",
            student_id,
            book_id,
            e,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e


def _sse_frame(data: str) -> str:
    return f"data: {data}\n\n"


async def _with_keepalive(
    events: AsyncIterator[ResponseEvent],
    interval: float,
) -> AsyncIterator[str]:
    """Format events as SSE frames, adding a comment frame while idle."""
    pending: asyncio.Task[ResponseEvent] | None = None
    try:
        while True:
            if pending is None:
                pending = asyncio.ensure_future(events.__anext__())
            done, _ = await asyncio.wait({pending}, timeout=interval)
            if not done:
                yield KEEPALIVE_FRAME
                continue
            try:
                event = pending.result()
            except StopAsyncIteration:
                return
            finally:
                pending = None
            yield _sse_frame(event.model_dump_json())
    finally:
        if pending is not None and not pending.done():
            pending.cancel()
            # The event iterator must be idle before it can be closed
            await asyncio.gather(pending, return_exceptions=True)


@router.post(
    "/chat",
    summary="Chat with the tutor",
    description="""
Send a message to the tutor and stream the turn as Server-Sent Events.

Event types:
- `content`: fragment of the tutor's answer
- `refusal`: the tutor declined to answer
- `tool_call`: the tutor is using a tool
- `tool_result`: result of that tool
- `error`: the turn failed
""",
)
async def chat(payload: ChatRequest, request: Request) -> StreamingResponse:
    """Stream one tutoring turn.

    Raises:
        HTTPException: 400 if the tutor agent cannot be created.
    """
    entry = await _get_agent(request, payload.student_id, payload.book_id)
    keepalive = request.app.state.settings.api.sse_keepalive_seconds

    async def event_generator() -> AsyncIterator[str]:
        bind_context(student_id=payload.student_id, book_id=payload.book_id)
        events = entry.agent.stream(payload.message, lock=entry.lock)
        try:
            async for frame in _with_keepalive(events, keepalive):
                yield frame
        except Exception as e:
            logger.exception("Tutor turn failed: %s", e)
            yield _sse_frame(json.dumps({"type": "error", "message": str(e)}))
        finally:
            await events.aclose()
            clear_context()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.get(
    "/conversation",
    response_model=ConversationResponse,
    summary="Get the current conversation",
)
async def get_conversation(
    request: Request,
    student_id: int = Query(...),
    book_id: int = Query(...),
) -> ConversationResponse:
    """Return the conversation messages currently in the tutor's window."""
    entry = await _get_agent(request, student_id, book_id)
    return ConversationResponse(
        student_id=student_id,
        book_id=book_id,
        messages=[message.to_openai() for message in entry.agent.conversation()],
    )


@router.delete(
    "/conversation",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a conversation",
)
async def delete_conversation(
    request: Request,
    student_id: int = Query(...),
    book_id: int = Query(...),
) -> None:
    """Delete progress, history and memories of a student's book."""
    cache = _get_cache(request)
    entry = cache.peek(student_id, book_id)
    store = ConversationStore(request.app.state.sessionmaker, student_id, book_id)
    # Wait for a running turn of this conversation to finish first
    async with entry.lock if entry is not None else nullcontext():
        await store.delete_conversation()
        cache.invalidate(student_id, book_id)
