"""
Conversation Models - Data structures for orchestrated LLM sessions

Session, Participant and Message mirror the persisted records; the
AnalyticsAggregate is derived from the message stream and rebuilt on
reload rather than loaded from storage.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from llm_talk.conversation.efficiency import SeriesTrend, trend_over_series
from llm_talk.core.constants import NEUTRAL_EFFICIENCY_SCORE
from llm_talk.providers.base import TokenUsage


def _now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class SessionStatus(str, Enum):
    """Session lifecycle: idle -> running -> completed | stopped | error."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.STOPPED, SessionStatus.ERROR)


@dataclass(frozen=True)
class Participant:
    """A conversation participant. Immutable once the session starts.

    Attributes:
        name: Display name, case-insensitively unique within a session.
        provider: Provider tag ("openai", "claude", ...).
        model: Model identifier passed to the provider.
        temperature: Sampling temperature in [0, 2].
        config: Opaque provider-specific settings.
        id: Unique identifier.
    """

    name: str
    provider: str
    model: str
    temperature: float = 0.7
    config: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "model": self.model,
            "temperature": self.temperature,
            "config": dict(self.config),
        }


@dataclass(frozen=True)
class SessionConfig:
    topic: str
    scenario: str
    max_iterations: int
    instruction: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "scenario": self.scenario,
            "max_iterations": self.max_iterations,
            "instruction": self.instruction,
        }


@dataclass(frozen=True)
class Message:
    """One accepted turn. Immutable; ordered by iteration.

    Attributes:
        session_id: Owning session.
        participant_id: Authoring participant.
        speaker: Authoring participant's display name.
        iteration: 1-based, one per message across the session.
        text: Emitted text.
        token_usage: Input/output/total tokens.
        translation: Optional plain-language gloss extracted from text.
        processing_time_ms: Provider latency, when measured.
        evolution_markers: Marker tags detected in text.
        efficiency_score: Score in [0, 100] against the previous message.
        prompt: Exact prompt sent to the provider.
    """

    session_id: str
    participant_id: str
    speaker: str
    iteration: int
    text: str
    token_usage: TokenUsage
    translation: str | None = None
    processing_time_ms: int | None = None
    evolution_markers: tuple[str, ...] = ()
    efficiency_score: float = NEUTRAL_EFFICIENCY_SCORE
    prompt: str = ""
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "participant_id": self.participant_id,
            "speaker": self.speaker,
            "iteration": self.iteration,
            "text": self.text,
            "translation": self.translation,
            "token_usage": self.token_usage.to_dict(),
            "processing_time_ms": self.processing_time_ms,
            "evolution_markers": list(self.evolution_markers),
            "efficiency_score": self.efficiency_score,
            "timestamp": self.timestamp.isoformat(),
        }


# =============================================================================
# Analytics
# =============================================================================

@dataclass
class ParticipantStats:
    """Per-participant rollup."""

    participant_id: str
    name: str
    provider: str
    message_count: int = 0
    total_tokens: int = 0
    average_tokens: float = 0.0
    average_latency_ms: float = 0.0
    efficiency_trend: list[float] = field(default_factory=list)
    cost: float = 0.0
    latency_samples: int = field(default=0, repr=False)

    def record(self, message: Message, cost: float) -> None:
        self.message_count += 1
        self.total_tokens += message.token_usage.total
        self.average_tokens = self.total_tokens / self.message_count
        if message.processing_time_ms is not None:
            # unmeasured turns do not count toward the mean
            self.latency_samples += 1
            self.average_latency_ms += (
                message.processing_time_ms - self.average_latency_ms
            ) / self.latency_samples
        self.efficiency_trend.append(message.efficiency_score)
        self.cost += cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "name": self.name,
            "provider": self.provider,
            "message_count": self.message_count,
            "total_tokens": self.total_tokens,
            "average_tokens": self.average_tokens,
            "average_latency_ms": self.average_latency_ms,
            "efficiency_trend": list(self.efficiency_trend),
            "cost": self.cost,
        }


@dataclass(frozen=True)
class EvolutionMarkerEvent:
    iteration: int
    marker: str
    participant_id: str
    speaker: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "marker": self.marker,
            "participant_id": self.participant_id,
            "speaker": self.speaker,
            "description": f"Evolution marker detected: {self.marker}",
        }


@dataclass
class AnalyticsAggregate:
    """Rolling analytics derived from accepted messages.

    Attributes:
        total_tokens: Sum of total tokens over all messages.
        average_tokens_per_message: total_tokens / message count.
        token_series: Total tokens per message, in iteration order.
        efficiency_trend: Efficiency score per message, in iteration order.
        participant_stats: Rollups keyed by participant id.
        evolution_events: One entry per detected marker.
        series_trend: trend_over_series(token_series).
        communication_level: Pattern-tracker level label.
        pattern_count: Number of registry entries.
        evolution_score: Pattern-tracker evolution score.
        total_cost: Running cost from per-token pricing.
    """

    total_tokens: int = 0
    average_tokens_per_message: float = 0.0
    token_series: list[int] = field(default_factory=list)
    efficiency_trend: list[float] = field(default_factory=list)
    participant_stats: dict[str, ParticipantStats] = field(default_factory=dict)
    evolution_events: list[EvolutionMarkerEvent] = field(default_factory=list)
    series_trend: SeriesTrend = field(default_factory=SeriesTrend)
    communication_level: str = "basic"
    pattern_count: int = 0
    evolution_score: float = 0.0
    total_cost: float = 0.0

    @classmethod
    def for_participants(cls, participants: list[Participant]) -> AnalyticsAggregate:
        return cls(
            participant_stats={
                p.id: ParticipantStats(participant_id=p.id, name=p.name, provider=p.provider)
                for p in participants
            }
        )

    def record(self, message: Message, cost: float = 0.0) -> None:
        """Fold one accepted message into the aggregate."""
        self.token_series.append(message.token_usage.total)
        self.total_tokens += message.token_usage.total
        self.average_tokens_per_message = self.total_tokens / len(self.token_series)
        self.efficiency_trend.append(message.efficiency_score)
        self.series_trend = trend_over_series(self.token_series)
        self.total_cost += cost

        stats = self.participant_stats.get(message.participant_id)
        if stats is not None:
            stats.record(message, cost)

        self.evolution_events.extend(
            EvolutionMarkerEvent(
                iteration=message.iteration,
                marker=marker,
                participant_id=message.participant_id,
                speaker=message.speaker,
            )
            for marker in message.evolution_markers
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tokens": self.total_tokens,
            "average_tokens_per_message": self.average_tokens_per_message,
            "token_series": list(self.token_series),
            "efficiency_trend": list(self.efficiency_trend),
            "participant_stats": [s.to_dict() for s in self.participant_stats.values()],
            "evolution_events": [e.to_dict() for e in self.evolution_events],
            "series_trend": self.series_trend.to_dict(),
            "communication_level": self.communication_level,
            "pattern_count": self.pattern_count,
            "evolution_score": self.evolution_score,
            "total_cost": self.total_cost,
        }


# =============================================================================
# Session
# =============================================================================

@dataclass
class Session:
    """Complete session state owned by one orchestrator.

    Attributes:
        config: Topic, scenario, iteration limit and instruction.
        participants: Ordered list; order defines turn rotation.
        status: Lifecycle status.
        current_iteration: Iteration of the last accepted message (0 if none).
        messages: Accepted messages in iteration order.
        analytics: Derived aggregate.
        estimated_cost: Up-front cost estimate computed at start.
        error_message: Last fatal error, when status is error.
    """

    config: SessionConfig
    participants: list[Participant]
    id: str = field(default_factory=_new_id)
    status: SessionStatus = SessionStatus.IDLE
    current_iteration: int = 0
    messages: list[Message] = field(default_factory=list)
    analytics: AnalyticsAggregate = field(default_factory=AnalyticsAggregate)
    estimated_cost: float = 0.0
    error_message: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None

    def speaker_for(self, iteration: int) -> Participant:
        """Participant who speaks at 1-based iteration."""
        return self.participants[(iteration - 1) % len(self.participants)]

    def next_speaker(self) -> Participant:
        return self.speaker_for(self.current_iteration + 1)

    def get_participant(self, participant_id: str) -> Participant | None:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    @property
    def is_complete(self) -> bool:
        return self.current_iteration >= self.config.max_iterations

    def touch(self) -> None:
        self.updated_at = _now()

    def to_dict(self, include_messages: bool = True) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "config": self.config.to_dict(),
            "participants": [p.to_dict() for p in self.participants],
            "current_iteration": self.current_iteration,
            "message_count": len(self.messages),
            "estimated_cost": self.estimated_cost,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
        if include_messages:
            data["messages"] = [m.to_dict() for m in self.messages]
        return data

    def get_transcript(self) -> str:
        """Get full session transcript as text.

        Returns:
            Human-readable transcript.
        """
        lines = [
            f"=== SESSION: {self.id} ===",
            f"Topic: {self.config.topic}",
            f"Scenario: {self.config.scenario}",
            f"Status: {self.status.value}",
            f"Iterations: {self.current_iteration}/{self.config.max_iterations}",
            "Participants: " + ", ".join(
                f"{p.name} ({p.provider}/{p.model})" for p in self.participants
            ),
            "",
            "--- TRANSCRIPT ---",
        ]

        for msg in self.messages:
            timestamp = msg.timestamp.strftime("%H:%M:%S")
            lines.append(
                f"[{timestamp}] #{msg.iteration} {msg.speaker} "
                f"({msg.token_usage.total} tokens): {msg.text}"
            )
            if msg.translation:
                lines.append(f"    Translation: {msg.translation}")

        lines.extend([
            "",
            "--- SUMMARY ---",
            f"Total tokens: {self.analytics.total_tokens}",
            f"Efficiency trend: {self.analytics.series_trend.trend.value}",
            f"Communication level: {self.analytics.communication_level}",
        ])
        return "\n".join(lines)


__all__ = [
    "AnalyticsAggregate",
    "EvolutionMarkerEvent",
    "Message",
    "Participant",
    "ParticipantStats",
    "Session",
    "SessionConfig",
    "SessionStatus",
]
