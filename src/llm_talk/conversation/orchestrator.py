"""
Session Orchestrator - owns one live session and drives its turn loop

Key Responsibilities:
- Validate and start sessions, or rehydrate them from the store
- Rotate speakers: iteration i is spoken by participants[(i - 1) mod n]
- Compose prompts, call the speaker's provider, score and persist turns
- Keep the Pattern Tracker and analytics aggregate current
- Apply the error policy: retryable provider faults leave the session
  running and the iteration unchanged; everything else is fatal

Single-writer: at most one turn is in flight per orchestrator. A second
send_next_message while a turn is running fails immediately with
AlreadyProcessingError instead of queueing. There is no cross-process
lock; two processes driving the same session id are not detected.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from llm_talk.conversation.efficiency import score
from llm_talk.conversation.evolution import PatternTracker
from llm_talk.conversation.markers import detect_markers, extract_translation
from llm_talk.conversation.models import (
    AnalyticsAggregate,
    Message,
    Participant,
    Session,
    SessionConfig,
    SessionStatus,
)
from llm_talk.conversation.prompts import (
    HistoryEntry,
    PromptContext,
    compose_prompt,
    validate_prompt,
)
from llm_talk.conversation.scenarios import get_scenario
from llm_talk.core.config import Settings, get_settings
from llm_talk.core.constants import (
    CONTEXT_PATTERN_COUNT,
    ESTIMATED_TOKENS_PER_MESSAGE,
    KNOWN_PROVIDERS,
    MAX_PARTICIPANTS,
    MAX_TEMPERATURE,
    MIN_PARTICIPANTS,
    MIN_TEMPERATURE,
    STOP_REASONS,
)
from llm_talk.core.exceptions import (
    AlreadyProcessingError,
    PersistenceError,
    ProviderUnavailableError,
    SessionCompleteError,
    SessionNotFoundError,
    SessionNotRunningError,
    SessionValidationError,
)
from llm_talk.core.logging import get_logger, turn_context
from llm_talk.providers.base import ContextMessage, ProviderResponse
from llm_talk.providers.errors import ProviderError
from llm_talk.providers.pricing import CostPerToken, calculate_cost, cost_per_token
from llm_talk.providers.registry import ProviderRegistry


if TYPE_CHECKING:
    from llm_talk.persistence.protocols import SessionDetails, SessionStore


logger = get_logger(__name__)


def validate_participants(participants: list[Participant], registry: ProviderRegistry) -> None:
    """Check count, names, temperatures and provider availability.

    Raises:
        SessionValidationError: Bad count, blank or duplicate name,
            out-of-range temperature, or unknown provider tag.
        ProviderUnavailableError: Known provider without a configured adapter.
    """
    if len(participants) < MIN_PARTICIPANTS:
        raise SessionValidationError(
            f"At least {MIN_PARTICIPANTS} participants are required",
            field="participants",
            value=len(participants),
        )
    if len(participants) > MAX_PARTICIPANTS:
        raise SessionValidationError(
            f"Maximum {MAX_PARTICIPANTS} participants allowed",
            field="participants",
            value=len(participants),
        )

    seen: set[str] = set()
    for participant in participants:
        name = participant.name.strip()
        if not name:
            raise SessionValidationError(
                "Participant name cannot be empty", field="participants.name", value=participant.name
            )
        if name.lower() in seen:
            raise SessionValidationError(
                f"Participant names must be unique: '{name}'",
                field="participants.name",
                value=participant.name,
            )
        seen.add(name.lower())

        if not MIN_TEMPERATURE <= participant.temperature <= MAX_TEMPERATURE:
            raise SessionValidationError(
                f"Temperature must be between {MIN_TEMPERATURE:g} and {MAX_TEMPERATURE:g}",
                field="participants.temperature",
                value=participant.temperature,
            )
        if participant.provider not in KNOWN_PROVIDERS:
            raise SessionValidationError(
                f"Unknown provider '{participant.provider}'",
                field="participants.provider",
                value=participant.provider,
            )
        if not registry.has(participant.provider):
            raise ProviderUnavailableError(participant.provider)


class SessionOrchestrator:
    """Owns exactly one session at a time.

    Collaborators are injected: the provider registry, the session store
    and settings. Nothing here is process-global.

    Attributes:
        registry: Provider adapters by tag.
        store: Durable session store.
        settings: Context-window and token defaults.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: SessionStore,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.settings = settings or get_settings()
        self._session: Session | None = None
        self._tracker = PatternTracker()
        self._turn_lock = asyncio.Lock()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def session_id(self) -> str | None:
        return self._session.id if self._session else None

    @property
    def status(self) -> SessionStatus:
        return self._session.status if self._session else SessionStatus.IDLE

    @property
    def is_processing(self) -> bool:
        return self._turn_lock.locked()

    @property
    def tracker(self) -> PatternTracker:
        return self._tracker

    def _require_session(self, session_id: str | None = None) -> Session:
        session = self._session
        if session is None or (session_id is not None and session.id != session_id):
            raise SessionNotFoundError(session_id or "<none>")
        return session

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(
        self,
        topic: str,
        scenario: str,
        participants: list[Participant],
        max_iterations: int,
        instruction: str | None = None,
    ) -> Session:
        """Validate input, persist a new running session and make it live.

        Args:
            topic: Conversation topic.
            scenario: Scenario tag from the catalog.
            participants: 2 to 5 participants; order defines turn rotation.
            max_iterations: Total number of turns, at least 1.
            instruction: Optional free-text instruction added to every prompt.

        Returns:
            The new session with current_iteration 0.

        Raises:
            SessionValidationError: Invalid input.
            ProviderUnavailableError: A participant's provider is not configured.
            AlreadyProcessingError: A turn of the current session is in flight.
            PersistenceError: The store rejected the session.
        """
        if self.is_processing:
            raise AlreadyProcessingError(self.session_id)

        topic = (topic or "").strip()
        if not topic:
            raise SessionValidationError("Topic cannot be empty", field="topic", value=topic)
        get_scenario(scenario)
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations < 1:
            raise SessionValidationError(
                "maxIterations must be an integer >= 1",
                field="max_iterations",
                value=max_iterations,
            )
        validate_participants(participants, self.registry)
        participants = [replace(p, name=p.name.strip()) for p in participants]

        instruction = instruction.strip() if instruction and instruction.strip() else None
        session = Session(
            config=SessionConfig(
                topic=topic,
                scenario=scenario,
                max_iterations=max_iterations,
                instruction=instruction,
            ),
            participants=list(participants),
            status=SessionStatus.RUNNING,
            analytics=AnalyticsAggregate.for_participants(participants),
        )
        session.estimated_cost = self.estimate_session_cost(session)

        try:
            await self.store.create_session(session)
        except Exception as e:
            raise PersistenceError(
                f"Failed to create session: {e}", "create_session", e, session.id
            ) from e

        self._session = session
        self._tracker = PatternTracker()
        logger.info(
            "session_started",
            session_id=session.id,
            scenario=scenario,
            participants=[p.name for p in session.participants],
            max_iterations=max_iterations,
            estimated_cost=session.estimated_cost,
        )
        return session

    async def load(self, session_id: str) -> Session:
        """Rehydrate a session from the store.

        Messages are replayed into a fresh Pattern Tracker and analytics
        aggregate; a running session resumes from its persisted iteration.

        Raises:
            SessionNotFoundError: Unknown id.
            AlreadyProcessingError: A turn is in flight.
            PersistenceError: The store failed.
        """
        if self.is_processing:
            raise AlreadyProcessingError(self.session_id)

        try:
            details = await self.store.get_session_details(session_id)
        except Exception as e:
            raise PersistenceError(
                f"Failed to load session: {e}", "get_session_details", e, session_id
            ) from e
        if details is None:
            raise SessionNotFoundError(session_id)

        session = self._rehydrate(details)
        tracker = PatternTracker()
        for message in session.messages:
            tracker.update(message.speaker, message.iteration, message.text)
            participant = session.get_participant(message.participant_id)
            cost = self._message_cost(participant, message) if participant else 0.0
            session.analytics.record(message, cost)
        self._refresh_pattern_stats(session, tracker)

        self._session = session
        self._tracker = tracker
        logger.info(
            "session_loaded",
            session_id=session.id,
            status=session.status.value,
            current_iteration=session.current_iteration,
            messages=len(session.messages),
            patterns=len(tracker),
        )
        return session

    def _rehydrate(self, details: SessionDetails) -> Session:
        record = details.session
        messages = sorted(details.messages, key=lambda m: m.iteration)
        last_iteration = messages[-1].iteration if messages else 0
        if record.current_iteration != last_iteration:
            logger.warning(
                "iteration_mismatch_on_load",
                session_id=record.id,
                stored=record.current_iteration,
                from_messages=last_iteration,
            )

        session = Session(
            id=record.id,
            config=SessionConfig(
                topic=record.topic,
                scenario=record.scenario,
                max_iterations=record.max_iterations,
                instruction=record.instruction,
            ),
            participants=list(details.participants),
            status=record.status,
            current_iteration=last_iteration,
            messages=messages,
            analytics=AnalyticsAggregate.for_participants(details.participants),
            estimated_cost=record.estimated_cost,
            error_message=record.error_message,
        )
        if record.created_at:
            session.created_at = record.created_at
        if record.updated_at:
            session.updated_at = record.updated_at
        session.completed_at = record.completed_at
        return session

    async def stop(self, reason: str = "manual", session_id: str | None = None) -> Session:
        """Move the session to completed ("completed") or stopped ("manual", "timeout").

        Idempotent: stopping a terminal session is a no-op. An in-flight
        provider call is not interrupted; only future turns are prevented.

        Raises:
            SessionValidationError: Unknown reason.
            SessionNotFoundError: No session (or a different one) is live.
            PersistenceError: The terminal status could not be stored.
        """
        if reason not in STOP_REASONS:
            raise SessionValidationError(
                f"Invalid stop reason '{reason}'. Expected one of: {', '.join(sorted(STOP_REASONS))}",
                field="reason",
                value=reason,
            )
        session = self._require_session(session_id)
        if session.status.is_terminal:
            logger.debug("stop_ignored", session_id=session.id, status=session.status.value)
            return session

        target = SessionStatus.COMPLETED if reason == "completed" else SessionStatus.STOPPED
        await self._finish(session, target, reason)
        return session

    async def _finish(self, session: Session, status: SessionStatus, reason: str) -> None:
        completed_at = datetime.now(UTC)
        try:
            await self.store.update_status(session.id, status, completed_at=completed_at)
        except Exception as e:
            session.status = SessionStatus.ERROR
            session.error_message = f"Failed to persist status {status.value}: {e}"
            session.touch()
            logger.error(
                "session_status_persist_failed",
                session_id=session.id,
                target_status=status.value,
                error=str(e),
            )
            raise PersistenceError(
                f"Failed to persist session status: {e}", "update_status", e, session.id
            ) from e

        session.status = status
        session.completed_at = completed_at
        session.touch()
        logger.info(
            "session_terminated",
            session_id=session.id,
            status=status.value,
            reason=reason,
            iterations=session.current_iteration,
            total_tokens=session.analytics.total_tokens,
        )
        await self._save_snapshot(session)

    async def _fail(self, session: Session, error: Exception) -> None:
        """Best-effort transition to error; persistence faults are logged only.

        A session that is already terminal keeps its status; stop() is final
        even when the turn it raced with fails afterwards.
        """
        if session.status.is_terminal:
            logger.warning(
                "turn_failed_after_terminal",
                session_id=session.id,
                status=session.status.value,
                error_type=type(error).__name__,
                error=str(error),
            )
            return
        session.status = SessionStatus.ERROR
        session.error_message = str(error)
        session.touch()
        try:
            await self.store.update_status(
                session.id,
                SessionStatus.ERROR,
                completed_at=datetime.now(UTC),
                error_message=str(error),
            )
        except Exception as e:
            logger.error("session_error_persist_failed", session_id=session.id, error=str(e))
            return
        await self._save_snapshot(session)

    async def _save_snapshot(self, session: Session) -> None:
        try:
            await self.store.save_analytics_snapshot(session.id, session.analytics.to_dict())
        except Exception as e:
            logger.warning("analytics_snapshot_failed", session_id=session.id, error=str(e))

    # =========================================================================
    # Turn loop
    # =========================================================================

    async def send_next_message(
        self,
        session_id: str | None = None,
        context_window: int | None = None,
    ) -> Message:
        """Produce, persist and return the next turn.

        Args:
            session_id: Optional guard; must match the live session.
            context_window: Trailing messages sent as provider context;
                defaults to settings.default_context_window.

        Returns:
            The accepted message.

        Raises:
            AlreadyProcessingError: Another turn is in flight.
            SessionNotRunningError: Session is not running.
            SessionCompleteError: max_iterations already reached.
            ProviderError: Provider fault. Retryable faults leave the session
                running; others move it to error.
            PersistenceError: The store failed; the session moves to error.
        """
        if self._turn_lock.locked():
            raise AlreadyProcessingError(self.session_id)

        async with self._turn_lock:
            session = self._require_session(session_id)
            if session.status is not SessionStatus.RUNNING:
                raise SessionNotRunningError(session.status.value, session.id)
            if session.is_complete:
                raise SessionCompleteError(session.id, session.config.max_iterations)
            if context_window is not None and context_window < 0:
                raise SessionValidationError(
                    "contextWindow must be >= 0", field="context_window", value=context_window
                )

            iteration = session.current_iteration + 1
            speaker = session.speaker_for(iteration)
            provider = self.registry.get(speaker.provider)
            prompt = self._compose(session, speaker, iteration)
            context = self.build_context(context_window)

            with turn_context(iteration, speaker.name):
                log = logger.bind(
                    session_id=session.id,
                    iteration=iteration,
                    speaker=speaker.name,
                    provider=speaker.provider,
                    model=speaker.model,
                )
                log.debug("turn_started", prompt_length=len(prompt), context_messages=len(context))

                try:
                    response = await provider.send(
                        prompt,
                        speaker.model,
                        speaker.temperature,
                        self.settings.default_max_tokens,
                        context,
                    )
                except ProviderError as e:
                    if e.retryable:
                        log.warning("turn_retryable_error", error_type=type(e).__name__, error=str(e))
                    else:
                        log.error("turn_fatal_error", error_type=type(e).__name__, error=str(e))
                        await self._fail(session, e)
                    raise

                message = self._build_message(session, speaker, iteration, prompt, response)
                try:
                    await self.store.append_message(message)
                except Exception as e:
                    error = PersistenceError(
                        f"Failed to persist message: {e}", "append_message", e, session.id
                    )
                    log.error("turn_persist_failed", error=str(e))
                    await self._fail(session, error)
                    raise error from e

                self._accept(session, speaker, message)
                log.info(
                    "turn_completed",
                    tokens=message.token_usage.total,
                    efficiency_score=message.efficiency_score,
                    markers=list(message.evolution_markers),
                    latency_ms=message.processing_time_ms,
                )

                if session.is_complete and session.status is SessionStatus.RUNNING:
                    await self._finish(session, SessionStatus.COMPLETED, "max_iterations")
                return message

    def _compose(self, session: Session, speaker: Participant, iteration: int) -> str:
        ctx = PromptContext(
            topic=session.config.topic,
            scenario=session.config.scenario,
            speaker=speaker.name,
            iteration=iteration,
            max_iterations=session.config.max_iterations,
            history=[
                HistoryEntry(speaker=m.speaker, text=m.text, iteration=m.iteration)
                for m in session.messages
            ],
            instruction=session.config.instruction,
            guidance=self._tracker.guidance_for(speaker.name),
            series_trend=session.analytics.series_trend,
            history_size=self.settings.prompt_history_size,
        )
        prompt = compose_prompt(ctx)

        check = validate_prompt(prompt, self.settings.default_max_tokens)
        if not check.is_valid:
            logger.warning(
                "prompt_validation_issues",
                session_id=session.id,
                iteration=iteration,
                estimated_tokens=check.estimated_tokens,
                issues=check.issues,
            )
        return prompt

    def _build_message(
        self,
        session: Session,
        speaker: Participant,
        iteration: int,
        prompt: str,
        response: ProviderResponse,
    ) -> Message:
        previous_total = session.messages[-1].token_usage.total if session.messages else 0
        analysis = score(previous_total, response.token_usage.total)
        return Message(
            session_id=session.id,
            participant_id=speaker.id,
            speaker=speaker.name,
            iteration=iteration,
            text=response.text,
            token_usage=response.token_usage,
            translation=extract_translation(response.text),
            processing_time_ms=response.latency_ms,
            evolution_markers=tuple(detect_markers(response.text, iteration)),
            efficiency_score=analysis.efficiency_score,
            prompt=prompt,
        )

    def _accept(self, session: Session, speaker: Participant, message: Message) -> None:
        session.messages.append(message)
        session.current_iteration = message.iteration
        session.touch()
        self._tracker.update(message.speaker, message.iteration, message.text)
        session.analytics.record(message, self._message_cost(speaker, message))
        self._refresh_pattern_stats(session, self._tracker)

    @staticmethod
    def _refresh_pattern_stats(session: Session, tracker: PatternTracker) -> None:
        session.analytics.communication_level = tracker.communication_level.value
        session.analytics.pattern_count = len(tracker)
        session.analytics.evolution_score = tracker.evolution_score

    # =========================================================================
    # Context, cost and status
    # =========================================================================

    def build_context(self, window: int | None = None) -> list[ContextMessage]:
        """Provider context: pattern summary plus the trailing window of turns."""
        session = self._session
        if session is None:
            return []

        size = self.settings.default_context_window if window is None else window
        recent = session.messages[-size:] if size > 0 else []

        context: list[ContextMessage] = []
        patterns = self._tracker.recent_patterns(CONTEXT_PATTERN_COUNT)
        if patterns:
            summary = ", ".join(p.describe() for p in patterns)
            context.append({
                "role": "system",
                "content": f"ESTABLISHED COMMUNICATION PATTERNS: {summary}",
            })

        for message in recent:
            content = f"[{message.speaker}]: {message.text}"
            if message.translation:
                content += f"\n[Translation: {message.translation}]"
            context.append({"role": "user", "content": content})
        return context

    def _pricing_for(self, participant: Participant) -> CostPerToken:
        if self.registry.has(participant.provider):
            return self.registry.get(participant.provider).cost_per_token(participant.model)
        return cost_per_token(participant.provider, participant.model)

    def _message_cost(self, participant: Participant, message: Message) -> float:
        return calculate_cost(
            message.token_usage.input,
            message.token_usage.output,
            self._pricing_for(participant),
        )

    def estimate_session_cost(self, session: Session) -> float:
        """Each iteration's speaker at an assumed 200 tokens and blended price."""
        return sum(
            ESTIMATED_TOKENS_PER_MESSAGE * self._pricing_for(session.speaker_for(i)).blended
            for i in range(1, session.config.max_iterations + 1)
        )

    def snapshot(self) -> dict[str, Any]:
        """Session, analytics and pattern registry as plain data."""
        session = self._require_session()
        return {
            "session": session.to_dict(),
            "analytics": session.analytics.to_dict(),
            "patterns": self._tracker.context().to_dict(),
            "is_processing": self.is_processing,
        }


__all__ = [
    "SessionOrchestrator",
    "validate_participants",
]
