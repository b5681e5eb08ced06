"""
Session API Routes - Conversation session endpoints

Endpoints:
- POST /v1/session/start - Start a new session
- POST /v1/session/message - Produce the next turn
- POST /v1/session/stop - Stop a session
- GET /v1/session/status?sessionId= - Session state and analytics
- GET /v1/session/{session_id}/transcript - Plain-text transcript
- GET /v1/session/{session_id}/events - Change feed as server-sent events
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import BaseModel, Field

from llm_talk.api.dependencies import OrchestratorPool, get_feed, get_pool
from llm_talk.conversation.models import Participant
from llm_talk.conversation.orchestrator import SessionOrchestrator
from llm_talk.core.constants import Timeouts
from llm_talk.core.exceptions import SessionValidationError
from llm_talk.core.logging import get_logger, session_context
from llm_talk.persistence.events import SessionStatusEvent
from llm_talk.persistence.protocols import ChangeFeed


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/session", tags=["session"])


# =============================================================================
# Request Models
# =============================================================================


class ParticipantRequest(BaseModel):
    """Participant definition for a session."""

    name: str = Field(..., description="Display name, unique within the session")
    provider: str = Field(..., description="openai, claude, gemini or perplexity")
    model: str = Field(..., description="Provider model identifier")
    temperature: float = Field(default=0.7, description="Sampling temperature (0-2)")
    config: dict[str, Any] = Field(default_factory=dict, description="Provider-specific settings")


class StartSessionRequest(BaseModel):
    """Request to start a new session."""

    topic: str = Field(..., description="Conversation topic")
    scenario: str = Field(..., description="Scenario tag")
    participants: list[ParticipantRequest] = Field(..., description="2-5 participants in turn order")
    maxIterations: int = Field(..., description="Total number of turns")
    instruction: str | None = Field(default=None, description="Optional extra instruction")


class SendMessageRequest(BaseModel):
    """Request to produce the next turn."""

    sessionId: str | None = Field(default=None, description="Session identifier")
    contextWindow: int | None = Field(default=None, description="Trailing messages sent as context")


class StopSessionRequest(BaseModel):
    """Request to stop a session."""

    sessionId: str | None = Field(default=None, description="Session identifier")
    reason: str = Field(default="manual", description="manual, completed or timeout")


def _require_session_id(session_id: str | None) -> str:
    if not session_id or not session_id.strip():
        raise SessionValidationError("Session ID is required", field="sessionId", value=session_id)
    return session_id.strip()


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/start")
async def start_session(
    request: StartSessionRequest,
    pool: OrchestratorPool = Depends(get_pool),
) -> dict[str, Any]:
    """Validate and start a session; returns its id and cost estimate."""
    orchestrator = pool.create()
    session = await orchestrator.start(
        topic=request.topic,
        scenario=request.scenario,
        participants=[
            Participant(
                name=p.name,
                provider=p.provider,
                model=p.model,
                temperature=p.temperature,
                config=p.config,
            )
            for p in request.participants
        ],
        max_iterations=request.maxIterations,
        instruction=request.instruction,
    )
    pool.register(orchestrator)

    return {
        "sessionId": session.id,
        "status": session.status.value,
        "config": session.config.to_dict(),
        "participants": [p.to_dict() for p in session.participants],
        "estimatedCost": session.estimated_cost,
    }


@router.post("/message")
async def send_message(
    request: SendMessageRequest,
    pool: OrchestratorPool = Depends(get_pool),
) -> dict[str, Any]:
    """Produce the next turn of a running session."""
    session_id = _require_session_id(request.sessionId)
    with session_context(session_id, operation="send_message"):
        orchestrator = await pool.get(session_id)
        try:
            message = await orchestrator.send_next_message(session_id, request.contextWindow)
        finally:
            pool.release(orchestrator)

    return {
        "message": message.to_dict(),
        "status": orchestrator.status.value,
        "currentIteration": orchestrator.session.current_iteration if orchestrator.session else 0,
    }


@router.post("/stop")
async def stop_session(
    request: StopSessionRequest,
    pool: OrchestratorPool = Depends(get_pool),
) -> dict[str, Any]:
    """Stop a session. Stopping an already-finished session is a no-op."""
    session_id = _require_session_id(request.sessionId)
    with session_context(session_id, operation="stop", reason=request.reason):
        orchestrator = await pool.get(session_id)
        session = await orchestrator.stop(request.reason, session_id)
        pool.release(orchestrator)

    return {
        "confirmation": f"Session {session.id} stopped ({request.reason})",
        "status": session.status.value,
    }


@router.get("/status")
async def session_status(
    sessionId: str | None = None,
    pool: OrchestratorPool = Depends(get_pool),
) -> dict[str, Any]:
    """Current session state, analytics and pattern registry."""
    session_id = _require_session_id(sessionId)
    orchestrator = await pool.get(session_id)
    snapshot = orchestrator.snapshot()

    return {
        "session": snapshot["session"],
        "analytics": snapshot["analytics"],
        "patterns": snapshot["patterns"],
        "isProcessing": snapshot["is_processing"],
    }


@router.get("/{session_id}/transcript", response_class=PlainTextResponse)
async def get_transcript(
    session_id: str,
    pool: OrchestratorPool = Depends(get_pool),
) -> str:
    """Full transcript as plain text."""
    orchestrator = await pool.get(session_id)
    return orchestrator.session.get_transcript() if orchestrator.session else ""


def _snapshot_sse(orchestrator: SessionOrchestrator) -> str:
    session = orchestrator.session
    data = {
        "session_id": orchestrator.session_id,
        "status": orchestrator.status.value,
        "current_iteration": session.current_iteration if session else 0,
        "message_count": len(session.messages) if session else 0,
    }
    return f"event: snapshot\ndata: {json.dumps(data)}\n\n"


@router.get("/{session_id}/events")
async def stream_events(
    session_id: str,
    request: Request,
    pool: OrchestratorPool = Depends(get_pool),
    feed: ChangeFeed = Depends(get_feed),
) -> StreamingResponse:
    """Stream appended messages and status changes as server-sent events.

    The stream opens with a snapshot event, then relays change-feed events
    until the session reaches a terminal status or the client disconnects.
    """
    orchestrator = await pool.get(session_id)
    queue = feed.subscribe(session_id)

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            yield _snapshot_sse(orchestrator)
            if orchestrator.status.is_terminal:
                return

            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=Timeouts.SSE_KEEPALIVE)
                except TimeoutError:
                    yield ": keepalive\n\n"
                    continue

                yield event.to_sse()
                if isinstance(event, SessionStatusEvent) and event.is_terminal:
                    break
        finally:
            feed.unsubscribe(session_id, queue)
            logger.debug("event_stream_closed", session_id=session_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


__all__ = ["router"]
