"""Service-wide constants.

Provides centralized values for:
- Provider tags and participant limits
- Evolution phases and marker tags
- Efficiency thresholds
- Default timeouts
"""

from enum import Enum


# =============================================================================
# Providers
# =============================================================================

class ProviderTag(str, Enum):
    """Provider identifiers accepted in participant definitions."""

    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"
    PERPLEXITY = "perplexity"


KNOWN_PROVIDERS: frozenset[str] = frozenset(p.value for p in ProviderTag)


# =============================================================================
# Session limits
# =============================================================================

MIN_PARTICIPANTS = 2
MAX_PARTICIPANTS = 5
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

STOP_REASONS: frozenset[str] = frozenset({"manual", "completed", "timeout"})

# Used for the up-front cost estimate returned by start
ESTIMATED_TOKENS_PER_MESSAGE = 200

# Pattern summary injected into provider context
CONTEXT_PATTERN_COUNT = 3


# =============================================================================
# Evolution phases and markers
# =============================================================================

class EvolutionPhase(str, Enum):
    """Coaching regime derived from iteration progress."""

    EARLY = "early"
    MIDDLE = "middle"
    LATE = "late"


EARLY_PHASE_LIMIT = 0.3
MIDDLE_PHASE_LIMIT = 0.7


class MarkerType(str, Enum):
    """Evolution-marker tags attached to messages."""

    SYMBOL_INTRODUCTION = "symbol_introduction"
    ABBREVIATION_USAGE = "abbreviation_usage"
    NOTATION_SYSTEM = "notation_system"
    EFFICIENCY_BREAKTHROUGH = "efficiency_breakthrough"


ABBREVIATION_MIN_ITERATION = 5
BREAKTHROUGH_MIN_ITERATION = 10
BREAKTHROUGH_MAX_LENGTH = 50


# =============================================================================
# Efficiency
# =============================================================================

NEUTRAL_EFFICIENCY_SCORE = 50.0
STEP_TREND_THRESHOLD = 5.0
SERIES_TREND_THRESHOLD = 2.0


# =============================================================================
# Timeouts
# =============================================================================

class Timeouts:
    """Default timeout values in seconds."""

    HTTP_PROVIDER: float = 120.0
    SSE_KEEPALIVE: float = 15.0
