"""Change-feed event models.

Emitted by the session store after a message append or a status change
and streamed to subscribers as server-sent events. Consumers must be
idempotent on message id: delivery is at-least-once.
"""

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class MessageAppendedEvent(BaseModel):
    """A message was durably appended to a session.

    Attributes:
        event_type: Always "message"
        session_id: Session identifier
        message: Serialized message (Message.to_dict())
        timestamp: Event creation time
        sequence: Per-session event sequence number
    """

    event_type: Literal["message"] = Field(default="message", description="Event type identifier")
    session_id: str = Field(..., description="Session identifier")
    message: dict[str, Any] = Field(..., description="Serialized message")
    timestamp: datetime = Field(..., description="Event timestamp")
    sequence: int = Field(..., description="Event sequence number", ge=1)

    def to_sse(self) -> str:
        data = {
            "session_id": self.session_id,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "sequence": self.sequence,
        }
        return f"event: message\ndata: {json.dumps(data)}\n\n"


class SessionStatusEvent(BaseModel):
    """A session changed status."""

    event_type: Literal["status"] = Field(default="status", description="Event type identifier")
    session_id: str = Field(..., description="Session identifier")
    status: str = Field(..., description="New session status")
    timestamp: datetime = Field(..., description="Event timestamp")
    sequence: int = Field(..., description="Event sequence number", ge=1)

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "stopped", "error")

    def to_sse(self) -> str:
        data = {
            "session_id": self.session_id,
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
            "sequence": self.sequence,
        }
        return f"event: status\ndata: {json.dumps(data)}\n\n"


SessionEvent = MessageAppendedEvent | SessionStatusEvent


__all__ = [
    "MessageAppendedEvent",
    "SessionEvent",
    "SessionStatusEvent",
]
