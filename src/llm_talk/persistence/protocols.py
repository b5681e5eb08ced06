"""Persistence collaborator contracts.

The orchestrator depends only on these protocols. Any implementation
must make append_message atomic: the message insert and the session and
participant rollup updates land together or not at all, otherwise the
current_iteration / message-count invariant breaks.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from llm_talk.conversation.models import Message, Participant, Session, SessionStatus
from llm_talk.persistence.events import SessionEvent


@dataclass
class SessionRecord:
    """Durable session row."""

    id: str
    topic: str
    scenario: str
    max_iterations: int
    instruction: str | None
    status: SessionStatus
    current_iteration: int = 0
    total_tokens: int = 0
    total_messages: int = 0
    estimated_cost: float = 0.0
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    analytics_snapshot: dict[str, Any] | None = None


@dataclass
class ParticipantRollup:
    """Durable per-participant counters updated by append_message."""

    participant_id: str
    message_count: int = 0
    total_tokens: int = 0


@dataclass
class SessionDetails:
    """Everything load() needs to rehydrate a session."""

    session: SessionRecord
    participants: list[Participant] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    rollups: dict[str, ParticipantRollup] = field(default_factory=dict)


@runtime_checkable
class SessionStore(Protocol):
    """Durable store for sessions, participants and messages."""

    async def create_session(self, session: Session) -> None:
        """Atomically create the session and its participant records."""
        ...

    async def append_message(self, message: Message) -> None:
        """Atomically insert message and update session/participant rollups.

        Must reject a message whose iteration is not the stored
        current_iteration + 1.
        """
        ...

    async def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        completed_at: datetime | None = None,
        error_message: str | None = None,
    ) -> None:
        ...

    async def get_session_details(self, session_id: str) -> SessionDetails | None:
        ...

    async def save_analytics_snapshot(self, session_id: str, snapshot: dict[str, Any]) -> None:
        """Mirror analytics for history; never read back as authoritative."""
        ...


@runtime_checkable
class ChangeFeed(Protocol):
    """At-least-once fan-out of session events to independent subscribers."""

    async def publish(self, event: SessionEvent) -> None:
        ...

    def subscribe(self, session_id: str) -> asyncio.Queue[SessionEvent]:
        ...

    def unsubscribe(self, session_id: str, queue: asyncio.Queue[SessionEvent]) -> None:
        ...


__all__ = [
    "ChangeFeed",
    "ParticipantRollup",
    "SessionDetails",
    "SessionRecord",
    "SessionStore",
]
