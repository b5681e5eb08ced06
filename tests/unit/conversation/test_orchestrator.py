"""Unit tests for SessionOrchestrator.

Covers the session state machine, speaker rotation, the provider error
policy, the single-writer busy flag and rehydration from the store.
"""

from __future__ import annotations

import asyncio

import pytest

from llm_talk.conversation.models import Participant, SessionStatus
from llm_talk.conversation.orchestrator import SessionOrchestrator
from llm_talk.core.config import Settings
from llm_talk.core.exceptions import (
    AlreadyProcessingError,
    PersistenceError,
    ProviderUnavailableError,
    SessionNotFoundError,
    SessionNotRunningError,
    SessionValidationError,
)
from llm_talk.persistence.memory import InMemorySessionStore
from llm_talk.providers.base import ProviderResponse, TokenUsage
from llm_talk.providers.errors import AuthenticationError, RateLimitError
from llm_talk.providers.registry import ProviderRegistry
from tests.fakes.fake_providers import FailingSessionStore, FakeModelProvider


TOPIC = "efficient machine dialogue"


async def _start(
    orchestrator: SessionOrchestrator,
    participants: list[Participant],
    max_iterations: int = 3,
    scenario: str = "protocol-evolution",
):
    return await orchestrator.start(TOPIC, scenario, participants, max_iterations)


# =============================================================================
# start
# =============================================================================


class TestStart:
    """Tests for session start and validation."""

    @pytest.mark.asyncio
    async def test_start_creates_running_session(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        store: InMemorySessionStore,
    ) -> None:
        session = await _start(orchestrator, participants)

        assert session.status is SessionStatus.RUNNING
        assert session.current_iteration == 0
        assert session.messages == []
        assert session.estimated_cost > 0
        assert orchestrator.session_id == session.id

        details = await store.get_session_details(session.id)
        assert details is not None
        assert details.session.status is SessionStatus.RUNNING
        assert [p.name for p in details.participants] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_start_strips_names_and_topic(
        self,
        orchestrator: SessionOrchestrator,
    ) -> None:
        session = await orchestrator.start(
            f"  {TOPIC}  ",
            "protocol-evolution",
            [
                Participant(name="  Alpha ", provider="openai", model="gpt-4o"),
                Participant(name="Beta", provider="claude", model="claude-3-5-sonnet-20241022"),
            ],
            2,
        )

        assert session.config.topic == TOPIC
        assert [p.name for p in session.participants] == ["Alpha", "Beta"]

    @pytest.mark.asyncio
    async def test_single_participant_rejected(self, orchestrator: SessionOrchestrator) -> None:
        with pytest.raises(SessionValidationError) as exc_info:
            await orchestrator.start(
                TOPIC,
                "protocol-evolution",
                [Participant(name="Solo", provider="openai", model="gpt-4o")],
                3,
            )

        assert exc_info.value.field == "participants"
        assert orchestrator.session is None

    @pytest.mark.asyncio
    async def test_six_participants_rejected(self, orchestrator: SessionOrchestrator) -> None:
        crowd = [Participant(name=f"P{i}", provider="openai", model="gpt-4o") for i in range(6)]

        with pytest.raises(SessionValidationError):
            await orchestrator.start(TOPIC, "protocol-evolution", crowd, 3)

    @pytest.mark.asyncio
    async def test_duplicate_names_rejected_case_insensitively(
        self,
        orchestrator: SessionOrchestrator,
    ) -> None:
        with pytest.raises(SessionValidationError):
            await orchestrator.start(
                TOPIC,
                "protocol-evolution",
                [
                    Participant(name="Echo", provider="openai", model="gpt-4o"),
                    Participant(name="echo", provider="claude", model="claude-3-5-sonnet-20241022"),
                ],
                3,
            )

    @pytest.mark.asyncio
    async def test_temperature_out_of_range_rejected(
        self,
        orchestrator: SessionOrchestrator,
    ) -> None:
        with pytest.raises(SessionValidationError) as exc_info:
            await orchestrator.start(
                TOPIC,
                "protocol-evolution",
                [
                    Participant(name="A", provider="openai", model="gpt-4o", temperature=2.5),
                    Participant(name="B", provider="claude", model="claude-3-5-sonnet-20241022"),
                ],
                3,
            )

        assert exc_info.value.field == "participants.temperature"

    @pytest.mark.asyncio
    async def test_unknown_scenario_rejected(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        with pytest.raises(SessionValidationError) as exc_info:
            await _start(orchestrator, participants, scenario="free-jazz")

        assert exc_info.value.field == "scenario"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_iterations", [0, -1])
    async def test_non_positive_max_iterations_rejected(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        max_iterations: int,
    ) -> None:
        with pytest.raises(SessionValidationError):
            await _start(orchestrator, participants, max_iterations=max_iterations)

    @pytest.mark.asyncio
    async def test_empty_topic_rejected(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        with pytest.raises(SessionValidationError):
            await orchestrator.start("   ", "protocol-evolution", participants, 3)

    @pytest.mark.asyncio
    async def test_unconfigured_provider_is_unavailable(
        self,
        orchestrator: SessionOrchestrator,
    ) -> None:
        with pytest.raises(ProviderUnavailableError) as exc_info:
            await orchestrator.start(
                TOPIC,
                "protocol-evolution",
                [
                    Participant(name="A", provider="openai", model="gpt-4o"),
                    Participant(
                        name="P",
                        provider="perplexity",
                        model="llama-3.1-sonar-small-128k-online",
                    ),
                ],
                3,
            )

        assert exc_info.value.provider == "perplexity"

    @pytest.mark.asyncio
    async def test_unknown_provider_tag_is_validation_error(
        self,
        orchestrator: SessionOrchestrator,
    ) -> None:
        with pytest.raises(SessionValidationError):
            await orchestrator.start(
                TOPIC,
                "protocol-evolution",
                [
                    Participant(name="A", provider="openai", model="gpt-4o"),
                    Participant(name="M", provider="mistral", model="large"),
                ],
                3,
            )

    @pytest.mark.asyncio
    async def test_store_failure_on_create_is_persistence_error(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
    ) -> None:
        failing = FailingSessionStore(store, {"create_session": RuntimeError("db down")})
        orchestrator = SessionOrchestrator(registry, failing, test_settings)

        with pytest.raises(PersistenceError) as exc_info:
            await _start(orchestrator, participants)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert orchestrator.session is None


# =============================================================================
# send_next_message
# =============================================================================


class TestTurnLoop:
    """Tests for speaker rotation and the happy path."""

    @pytest.mark.asyncio
    async def test_speakers_rotate_then_session_completes(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        store: InMemorySessionStore,
    ) -> None:
        session = await _start(orchestrator, participants, max_iterations=3)

        speakers = []
        for _ in range(3):
            message = await orchestrator.send_next_message()
            speakers.append(message.speaker)

        assert speakers == ["A", "B", "C"]
        assert [m.iteration for m in session.messages] == [1, 2, 3]
        assert session.status is SessionStatus.COMPLETED
        assert session.completed_at is not None

        details = await store.get_session_details(session.id)
        assert details.session.status is SessionStatus.COMPLETED
        assert details.session.current_iteration == 3
        assert details.session.analytics_snapshot is not None

    @pytest.mark.asyncio
    async def test_send_after_completion_is_rejected(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants[:2], max_iterations=2)
        await orchestrator.send_next_message()
        await orchestrator.send_next_message()

        with pytest.raises(SessionNotRunningError):
            await orchestrator.send_next_message()

        assert orchestrator.session.current_iteration == 2

    @pytest.mark.asyncio
    async def test_rotation_wraps_around(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants[:2], max_iterations=5)

        speakers = [(await orchestrator.send_next_message()).speaker for _ in range(5)]

        assert speakers == ["A", "B", "A", "B", "A"]

    @pytest.mark.asyncio
    async def test_each_speaker_uses_own_provider_and_settings(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
        claude_fake: FakeModelProvider,
        test_settings: Settings,
    ) -> None:
        await _start(orchestrator, participants, max_iterations=3)
        await orchestrator.send_next_message()
        await orchestrator.send_next_message()

        assert len(openai_fake.call_history) == 1
        assert len(claude_fake.call_history) == 1
        call = claude_fake.call_history[0]
        assert call["model"] == "claude-3-5-sonnet-20241022"
        assert call["temperature"] == 0.7
        assert call["max_tokens"] == test_settings.default_max_tokens

    @pytest.mark.asyncio
    async def test_first_message_prompt_opens_conversation(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants)

        message = await orchestrator.send_next_message()

        assert "This is the start of the conversation" in message.prompt
        assert TOPIC in message.prompt

    @pytest.mark.asyncio
    async def test_session_id_mismatch_is_not_found(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants)

        with pytest.raises(SessionNotFoundError):
            await orchestrator.send_next_message("some-other-session")

    @pytest.mark.asyncio
    async def test_send_without_session_is_not_found(
        self,
        orchestrator: SessionOrchestrator,
    ) -> None:
        with pytest.raises(SessionNotFoundError):
            await orchestrator.send_next_message()

    @pytest.mark.asyncio
    async def test_negative_context_window_rejected(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants)

        with pytest.raises(SessionValidationError):
            await orchestrator.send_next_message(context_window=-1)

        assert orchestrator.status is SessionStatus.RUNNING


class TestMessageScoring:
    """Tests for efficiency scores, translations and markers on messages."""

    @pytest.mark.asyncio
    async def test_first_message_scores_neutral(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants)

        message = await orchestrator.send_next_message()

        assert message.efficiency_score == 50.0

    @pytest.mark.asyncio
    async def test_shorter_reply_scores_higher(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        claude_fake: FakeModelProvider,
    ) -> None:
        claude_fake._script.append(
            ProviderResponse(text="shorter", token_usage=TokenUsage(input=40, output=40, total=80))
        )
        session = await _start(orchestrator, participants)

        await orchestrator.send_next_message()
        second = await orchestrator.send_next_message()

        # 100 -> 80 tokens is a 20% improvement
        assert second.efficiency_score == pytest.approx(90.0)
        assert session.analytics.token_series == [100, 80]
        assert session.analytics.efficiency_trend == [50.0, pytest.approx(90.0)]

    @pytest.mark.asyncio
    async def test_translation_and_markers_extracted(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
    ) -> None:
        openai_fake._script.append("idea ⇒ action [translation: turn ideas into action]")
        session = await _start(orchestrator, participants)

        message = await orchestrator.send_next_message()

        assert message.translation == "turn ideas into action"
        assert message.evolution_markers == ("symbol_introduction",)
        assert session.analytics.evolution_events[0].marker == "symbol_introduction"


class TestPatternTracking:
    """Tests for pattern registry updates driven by the turn loop."""

    @pytest.mark.asyncio
    async def test_symbol_adoption_by_another_speaker(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
        claude_fake: FakeModelProvider,
    ) -> None:
        openai_fake._script.append("Let us define [fx: fast execution] for speed.")
        claude_fake._script.append("Agreed, fx makes this easier.")
        session = await _start(orchestrator, participants)

        await orchestrator.send_next_message()
        await orchestrator.send_next_message()

        pattern = orchestrator.tracker.get("symbol", "fx")
        assert pattern is not None
        assert pattern.first_used_by == "A"
        assert pattern.first_used_in == 1
        assert pattern.adoption_count == 2
        assert session.analytics.pattern_count == 1
        assert session.analytics.communication_level == "evolving"

    @pytest.mark.asyncio
    async def test_context_carries_patterns_and_translations(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
        gemini_fake: FakeModelProvider,
    ) -> None:
        openai_fake._script.append("[fx: fast execution] ok [meaning: we go fast]")
        await _start(orchestrator, participants)

        await orchestrator.send_next_message()
        await orchestrator.send_next_message()
        await orchestrator.send_next_message()

        context = gemini_fake.call_history[0]["context_messages"]
        assert context[0]["role"] == "system"
        assert context[0]["content"].startswith("ESTABLISHED COMMUNICATION PATTERNS: fx (fast execution)")
        assert context[1]["content"].startswith("[A]: [fx: fast execution]")
        assert context[1]["content"].endswith("[Translation: we go fast]")
        assert context[2]["content"].startswith("[B]: ")

    @pytest.mark.asyncio
    async def test_context_window_limits_history(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        gemini_fake: FakeModelProvider,
    ) -> None:
        await _start(orchestrator, participants)
        await orchestrator.send_next_message()
        await orchestrator.send_next_message()

        await orchestrator.send_next_message(context_window=1)

        context = gemini_fake.call_history[0]["context_messages"]
        assert [m["role"] for m in context] == ["user"]
        assert context[0]["content"].startswith("[B]: ")

    @pytest.mark.asyncio
    async def test_zero_context_window_sends_no_history(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        claude_fake: FakeModelProvider,
    ) -> None:
        await _start(orchestrator, participants)
        await orchestrator.send_next_message()

        await orchestrator.send_next_message(context_window=0)

        assert claude_fake.call_history[0]["context_messages"] == []


# =============================================================================
# Error policy
# =============================================================================


class TestProviderErrors:
    """Tests for retryable and fatal provider faults."""

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_session_running(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
        store: InMemorySessionStore,
    ) -> None:
        openai_fake._script.append(
            RateLimitError("openai API error: slow down", "openai", "gpt-4o", retry_after_seconds=2)
        )
        session = await _start(orchestrator, participants)

        with pytest.raises(RateLimitError) as exc_info:
            await orchestrator.send_next_message()

        assert exc_info.value.retryable is True
        assert session.status is SessionStatus.RUNNING
        assert session.current_iteration == 0
        details = await store.get_session_details(session.id)
        assert details.messages == []

        retry = await orchestrator.send_next_message()
        assert retry.iteration == 1
        assert retry.speaker == "A"

    @pytest.mark.asyncio
    async def test_authentication_failure_moves_session_to_error(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
        store: InMemorySessionStore,
    ) -> None:
        openai_fake._script.append(
            AuthenticationError("openai API error: invalid key", "openai", "gpt-4o", 401)
        )
        session = await _start(orchestrator, participants)

        with pytest.raises(AuthenticationError):
            await orchestrator.send_next_message()

        assert session.status is SessionStatus.ERROR
        assert "invalid key" in session.error_message
        details = await store.get_session_details(session.id)
        assert details.session.status is SessionStatus.ERROR

        with pytest.raises(SessionNotRunningError):
            await orchestrator.send_next_message()

    @pytest.mark.asyncio
    async def test_message_persist_failure_is_fatal(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
    ) -> None:
        failing = FailingSessionStore(store, {"append_message": RuntimeError("disk full")})
        orchestrator = SessionOrchestrator(registry, failing, test_settings)
        session = await _start(orchestrator, participants)

        with pytest.raises(PersistenceError) as exc_info:
            await orchestrator.send_next_message()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.operation == "append_message"
        assert session.status is SessionStatus.ERROR
        assert session.current_iteration == 0
        assert session.messages == []

    @pytest.mark.asyncio
    async def test_busy_flag_cleared_after_error(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
    ) -> None:
        openai_fake._script.append(RateLimitError("openai API error: slow down", "openai"))
        await _start(orchestrator, participants)

        with pytest.raises(RateLimitError):
            await orchestrator.send_next_message()

        assert orchestrator.is_processing is False


# =============================================================================
# Concurrency
# =============================================================================


class TestBusyFlag:
    """Tests for the single-writer guarantee."""

    @pytest.mark.asyncio
    async def test_concurrent_send_fails_fast(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
    ) -> None:
        registry.register("openai", FakeModelProvider("openai", delay=0.05))
        orchestrator = SessionOrchestrator(registry, store, test_settings)
        session = await _start(orchestrator, participants)

        results = await asyncio.gather(
            orchestrator.send_next_message(),
            orchestrator.send_next_message(),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, AlreadyProcessingError)]
        messages = [r for r in results if not isinstance(r, Exception)]
        assert len(errors) == 1
        assert len(messages) == 1
        assert errors[0].retryable is True
        assert session.current_iteration == 1
        assert orchestrator.is_processing is False

    @pytest.mark.asyncio
    async def test_iterations_strictly_increase(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        store: InMemorySessionStore,
    ) -> None:
        session = await _start(orchestrator, participants, max_iterations=6)

        for _ in range(6):
            await orchestrator.send_next_message()

        details = await store.get_session_details(session.id)
        assert [m.iteration for m in details.messages] == [1, 2, 3, 4, 5, 6]
        assert details.session.current_iteration == len(details.messages)


# =============================================================================
# stop
# =============================================================================


class TestStop:
    """Tests for stop semantics."""

    @pytest.mark.asyncio
    async def test_manual_stop(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
        store: InMemorySessionStore,
    ) -> None:
        session = await _start(orchestrator, participants)

        await orchestrator.stop("manual")

        assert session.status is SessionStatus.STOPPED
        details = await store.get_session_details(session.id)
        assert details.session.status is SessionStatus.STOPPED
        with pytest.raises(SessionNotRunningError):
            await orchestrator.send_next_message()

    @pytest.mark.asyncio
    async def test_stop_with_completed_reason(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        session = await _start(orchestrator, participants)

        await orchestrator.stop("completed")

        assert session.status is SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stop_twice_is_noop(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        session = await _start(orchestrator, participants)

        await orchestrator.stop("manual")
        completed_at = session.completed_at
        await orchestrator.stop("manual")

        assert session.status is SessionStatus.STOPPED
        assert session.completed_at == completed_at

    @pytest.mark.asyncio
    async def test_stop_completed_session_keeps_completed(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        session = await _start(orchestrator, participants[:2], max_iterations=1)
        await orchestrator.send_next_message()

        await orchestrator.stop("manual")

        assert session.status is SessionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_invalid_reason_rejected(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        session = await _start(orchestrator, participants)

        with pytest.raises(SessionValidationError):
            await orchestrator.stop("bored")

        assert session.status is SessionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_status_persist_failure_moves_to_error(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
    ) -> None:
        failing = FailingSessionStore(store, {"update_status": RuntimeError("db down")})
        orchestrator = SessionOrchestrator(registry, failing, test_settings)
        session = await _start(orchestrator, participants)

        with pytest.raises(PersistenceError):
            await orchestrator.stop("manual")

        assert session.status is SessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_fatal_error_after_stop_keeps_stopped(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
    ) -> None:
        registry.register(
            "openai",
            FakeModelProvider(
                "openai",
                script=[AuthenticationError("openai API error: invalid key", "openai", "gpt-4o", 401)],
                delay=0.05,
            ),
        )
        orchestrator = SessionOrchestrator(registry, store, test_settings)
        session = await _start(orchestrator, participants)

        turn = asyncio.create_task(orchestrator.send_next_message())
        await asyncio.sleep(0.01)
        await orchestrator.stop("manual")

        with pytest.raises(AuthenticationError):
            await turn

        assert session.status is SessionStatus.STOPPED
        assert session.error_message is None
        details = await store.get_session_details(session.id)
        assert details.session.status is SessionStatus.STOPPED

    @pytest.mark.asyncio
    async def test_append_failure_after_stop_keeps_stopped(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
    ) -> None:
        registry.register("openai", FakeModelProvider("openai", delay=0.05))
        failing = FailingSessionStore(store, {"append_message": RuntimeError("disk full")})
        orchestrator = SessionOrchestrator(registry, failing, test_settings)
        session = await _start(orchestrator, participants)

        turn = asyncio.create_task(orchestrator.send_next_message())
        await asyncio.sleep(0.01)
        await orchestrator.stop("manual")

        with pytest.raises(PersistenceError):
            await turn

        assert session.status is SessionStatus.STOPPED
        details = await store.get_session_details(session.id)
        assert details.session.status is SessionStatus.STOPPED


# =============================================================================
# load
# =============================================================================


class TestLoad:
    """Tests for rehydrating a session from the store."""

    @pytest.mark.asyncio
    async def test_load_resumes_rotation_and_replays_patterns(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
        participants: list[Participant],
        openai_fake: FakeModelProvider,
        claude_fake: FakeModelProvider,
    ) -> None:
        openai_fake._script.append("Let us define [fx: fast execution] for speed.")
        claude_fake._script.append("Agreed, fx makes this easier.")
        first = SessionOrchestrator(registry, store, test_settings)
        session = await _start(first, participants, max_iterations=4)
        await first.send_next_message()
        await first.send_next_message()

        second = SessionOrchestrator(registry, store, test_settings)
        loaded = await second.load(session.id)

        assert loaded.status is SessionStatus.RUNNING
        assert loaded.current_iteration == 2
        assert loaded.analytics.total_tokens == 200
        assert second.tracker.get("symbol", "fx").adoption_count == 2

        message = await second.send_next_message()
        assert message.iteration == 3
        assert message.speaker == "C"

    @pytest.mark.asyncio
    async def test_load_unknown_session(self, orchestrator: SessionOrchestrator) -> None:
        with pytest.raises(SessionNotFoundError):
            await orchestrator.load("missing")

    @pytest.mark.asyncio
    async def test_load_store_failure_is_persistence_error(
        self,
        registry: ProviderRegistry,
        store: InMemorySessionStore,
        test_settings: Settings,
    ) -> None:
        failing = FailingSessionStore(store, {"get_session_details": RuntimeError("db down")})
        orchestrator = SessionOrchestrator(registry, failing, test_settings)

        with pytest.raises(PersistenceError):
            await orchestrator.load("any")


class TestSnapshot:
    """Tests for snapshot() and cost estimation."""

    @pytest.mark.asyncio
    async def test_snapshot_shape(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        await _start(orchestrator, participants)
        await orchestrator.send_next_message()

        snapshot = orchestrator.snapshot()

        assert snapshot["session"]["current_iteration"] == 1
        assert snapshot["analytics"]["total_tokens"] == 100
        assert snapshot["patterns"]["communication_level"] == "basic"
        assert snapshot["is_processing"] is False

    @pytest.mark.asyncio
    async def test_estimated_cost_uses_provider_pricing(
        self,
        orchestrator: SessionOrchestrator,
        participants: list[Participant],
    ) -> None:
        session = await _start(orchestrator, participants, max_iterations=3)

        # Fakes price at 0.00001 input / 0.00003 output, blended 0.00002
        assert session.estimated_cost == pytest.approx(3 * 200 * 0.00002)
