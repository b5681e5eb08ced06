"""Persistence collaborators: store/feed protocols and in-memory implementations."""

from llm_talk.persistence.events import MessageAppendedEvent, SessionEvent, SessionStatusEvent
from llm_talk.persistence.memory import InMemoryChangeFeed, InMemorySessionStore
from llm_talk.persistence.protocols import (
    ChangeFeed,
    ParticipantRollup,
    SessionDetails,
    SessionRecord,
    SessionStore,
)


__all__ = [
    "ChangeFeed",
    "InMemoryChangeFeed",
    "InMemorySessionStore",
    "MessageAppendedEvent",
    "ParticipantRollup",
    "SessionDetails",
    "SessionEvent",
    "SessionRecord",
    "SessionStatusEvent",
    "SessionStore",
]
