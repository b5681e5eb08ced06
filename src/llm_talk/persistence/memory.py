"""In-memory session store and change feed.

InMemorySessionStore keeps records in dictionaries guarded by a
threading.Lock; every write happens under the lock, so append_message is
atomic with respect to readers. InMemoryChangeFeed fans events out to
one asyncio.Queue per subscriber.
"""

from __future__ import annotations

import asyncio
import copy
import threading
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from llm_talk.conversation.models import Message, Participant, Session, SessionStatus
from llm_talk.core.logging import get_logger
from llm_talk.persistence.events import MessageAppendedEvent, SessionEvent, SessionStatusEvent
from llm_talk.persistence.protocols import (
    ChangeFeed,
    ParticipantRollup,
    SessionDetails,
    SessionRecord,
)


logger = get_logger(__name__)


class InMemoryChangeFeed:
    """Fan-out change feed.

    Each subscriber gets its own unbounded queue; a slow subscriber never
    blocks publishers or other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[asyncio.Queue[SessionEvent]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, session_id: str) -> asyncio.Queue[SessionEvent]:
        queue: asyncio.Queue[SessionEvent] = asyncio.Queue()
        with self._lock:
            self._subscribers[session_id].append(queue)
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue[SessionEvent]) -> None:
        with self._lock:
            queues = self._subscribers.get(session_id)
            if not queues:
                return
            if queue in queues:
                queues.remove(queue)
            if not queues:
                del self._subscribers[session_id]

    def subscriber_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(session_id, []))

    async def publish(self, event: SessionEvent) -> None:
        with self._lock:
            queues = list(self._subscribers.get(event.session_id, []))
        for queue in queues:
            queue.put_nowait(event)


class InMemorySessionStore:
    """Thread-safe in-memory implementation of SessionStore.

    Attributes:
        feed: Optional change feed notified after each committed write.
    """

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self.feed = feed
        self._sessions: dict[str, SessionRecord] = {}
        self._participants: dict[str, list[Participant]] = {}
        self._messages: dict[str, list[Message]] = {}
        self._rollups: dict[str, dict[str, ParticipantRollup]] = {}
        self._sequences: dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def _next_sequence(self, session_id: str) -> int:
        self._sequences[session_id] += 1
        return self._sequences[session_id]

    async def create_session(self, session: Session) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Session {session.id} already exists")
            self._sessions[session.id] = SessionRecord(
                id=session.id,
                topic=session.config.topic,
                scenario=session.config.scenario,
                max_iterations=session.config.max_iterations,
                instruction=session.config.instruction,
                status=session.status,
                current_iteration=session.current_iteration,
                estimated_cost=session.estimated_cost,
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
            self._participants[session.id] = list(session.participants)
            self._messages[session.id] = []
            self._rollups[session.id] = {
                p.id: ParticipantRollup(participant_id=p.id) for p in session.participants
            }

    async def append_message(self, message: Message) -> None:
        with self._lock:
            record = self._sessions.get(message.session_id)
            if record is None:
                raise KeyError(f"Session {message.session_id} not found")
            rollups = self._rollups[message.session_id]
            if message.participant_id not in rollups:
                raise ValueError(
                    f"Participant {message.participant_id} is not part of session "
                    f"{message.session_id}"
                )
            expected = record.current_iteration + 1
            if message.iteration != expected:
                raise ValueError(
                    f"Iteration conflict: expected {expected}, got {message.iteration}"
                )

            self._messages[message.session_id].append(message)
            record.current_iteration = message.iteration
            record.total_messages += 1
            record.total_tokens += message.token_usage.total
            record.updated_at = datetime.now(UTC)
            rollup = rollups[message.participant_id]
            rollup.message_count += 1
            rollup.total_tokens += message.token_usage.total
            sequence = self._next_sequence(message.session_id)

        if self.feed is not None:
            await self.feed.publish(
                MessageAppendedEvent(
                    session_id=message.session_id,
                    message=message.to_dict(),
                    timestamp=datetime.now(UTC),
                    sequence=sequence,
                )
            )

    async def update_status(
        self,
        session_id: str,
        status: SessionStatus,
        completed_at: datetime | None = None,
        error_message: str | None = None,
    ) -> None:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise KeyError(f"Session {session_id} not found")
            record.status = status
            record.updated_at = datetime.now(UTC)
            if completed_at is not None:
                record.completed_at = completed_at
            if error_message is not None:
                record.error_message = error_message
            sequence = self._next_sequence(session_id)

        if self.feed is not None:
            await self.feed.publish(
                SessionStatusEvent(
                    session_id=session_id,
                    status=status.value,
                    timestamp=datetime.now(UTC),
                    sequence=sequence,
                )
            )

    async def get_session_details(self, session_id: str) -> SessionDetails | None:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            return SessionDetails(
                session=copy.deepcopy(record),
                participants=list(self._participants[session_id]),
                messages=list(self._messages[session_id]),
                rollups=copy.deepcopy(self._rollups[session_id]),
            )

    async def save_analytics_snapshot(self, session_id: str, snapshot: dict[str, Any]) -> None:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise KeyError(f"Session {session_id} not found")
            record.analytics_snapshot = copy.deepcopy(snapshot)

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = [
    "InMemoryChangeFeed",
    "InMemorySessionStore",
]
