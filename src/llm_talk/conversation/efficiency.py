"""Token Efficiency Analyzer.

Pure functions turning token counts into efficiency scores and trends.
An efficiency score of 50 is neutral; every percent of token reduction
relative to the previous message adds two points, clamped to [0, 100].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from llm_talk.core.constants import (
    NEUTRAL_EFFICIENCY_SCORE,
    SERIES_TREND_THRESHOLD,
    STEP_TREND_THRESHOLD,
)


class Trend(str, Enum):
    """Direction of token efficiency."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True)
class EfficiencyAnalysis:
    """Result of comparing one message's token count with the previous one.

    Attributes:
        delta: Tokens saved (previous - current); negative when growing.
        pct_improvement: delta as a percentage of previous.
        efficiency_score: Score in [0, 100].
        trend: Step trend using a 5% dead band.
    """

    delta: int
    pct_improvement: float
    efficiency_score: float
    trend: Trend

    def to_dict(self) -> dict[str, Any]:
        return {
            "delta": self.delta,
            "pct_improvement": self.pct_improvement,
            "efficiency_score": self.efficiency_score,
            "trend": self.trend.value,
        }


@dataclass(frozen=True)
class SeriesTrend:
    """Trend across a whole token-count series."""

    trend: Trend = Trend.STABLE
    average_improvement: float = 0.0
    best_improvement: float = 0.0
    worst_improvement: float = 0.0
    scores: list[float] = field(default_factory=lambda: [NEUTRAL_EFFICIENCY_SCORE])

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend.value,
            "average_improvement": self.average_improvement,
            "best_improvement": self.best_improvement,
            "worst_improvement": self.worst_improvement,
            "scores": list(self.scores),
        }


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def score(previous: int, current: int) -> EfficiencyAnalysis:
    """Score current against previous token count.

    A previous count of zero (no prior message) yields the neutral score.

    Args:
        previous: Total tokens of the immediately preceding message.
        current: Total tokens of this message.

    Returns:
        EfficiencyAnalysis with score clamped to [0, 100].
    """
    if previous <= 0:
        return EfficiencyAnalysis(
            delta=0,
            pct_improvement=0.0,
            efficiency_score=NEUTRAL_EFFICIENCY_SCORE,
            trend=Trend.STABLE,
        )

    delta = previous - current
    pct = delta / previous * 100

    if pct > STEP_TREND_THRESHOLD:
        trend = Trend.IMPROVING
    elif pct < -STEP_TREND_THRESHOLD:
        trend = Trend.DECLINING
    else:
        trend = Trend.STABLE

    return EfficiencyAnalysis(
        delta=delta,
        pct_improvement=pct,
        efficiency_score=_clamp(NEUTRAL_EFFICIENCY_SCORE + pct * 2),
        trend=trend,
    )


def trend_over_series(token_counts: list[int]) -> SeriesTrend:
    """Fold pairwise scores across a series.

    The overall trend uses the mean step improvement with a 2% dead band.
    This is analytics only; prompt phase selection never reads it.
    """
    if len(token_counts) < 2:
        return SeriesTrend()

    improvements: list[float] = []
    scores = [NEUTRAL_EFFICIENCY_SCORE]
    for previous, current in zip(token_counts, token_counts[1:]):
        analysis = score(previous, current)
        improvements.append(analysis.pct_improvement)
        scores.append(analysis.efficiency_score)

    average = sum(improvements) / len(improvements)
    if average > SERIES_TREND_THRESHOLD:
        trend = Trend.IMPROVING
    elif average < -SERIES_TREND_THRESHOLD:
        trend = Trend.DECLINING
    else:
        trend = Trend.STABLE

    return SeriesTrend(
        trend=trend,
        average_improvement=average,
        best_improvement=max(improvements),
        worst_improvement=min(improvements),
        scores=scores,
    )


__all__ = [
    "EfficiencyAnalysis",
    "SeriesTrend",
    "Trend",
    "score",
    "trend_over_series",
]
