"""Conversation orchestration: session model, turn loop, prompts and analytics."""

from llm_talk.conversation.efficiency import EfficiencyAnalysis, SeriesTrend, Trend, score, trend_over_series
from llm_talk.conversation.evolution import EvolutionPattern, PatternKind, PatternTracker
from llm_talk.conversation.models import (
    AnalyticsAggregate,
    Message,
    Participant,
    Session,
    SessionConfig,
    SessionStatus,
)
from llm_talk.conversation.orchestrator import SessionOrchestrator
from llm_talk.conversation.prompts import PromptContext, compose_prompt
from llm_talk.conversation.scenarios import SCENARIOS, get_scenario


__all__ = [
    "SCENARIOS",
    "AnalyticsAggregate",
    "EfficiencyAnalysis",
    "EvolutionPattern",
    "Message",
    "Participant",
    "PatternKind",
    "PatternTracker",
    "PromptContext",
    "SeriesTrend",
    "Session",
    "SessionConfig",
    "SessionOrchestrator",
    "SessionStatus",
    "Trend",
    "compose_prompt",
    "get_scenario",
    "score",
    "trend_over_series",
]
