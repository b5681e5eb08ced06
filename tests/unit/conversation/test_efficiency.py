"""Unit tests for the Token Efficiency Analyzer."""

import pytest

from llm_talk.conversation.efficiency import Trend, score, trend_over_series


class TestScore:
    """Tests for score(previous, current)."""

    def test_no_previous_message_is_neutral(self) -> None:
        analysis = score(0, 120)

        assert analysis.efficiency_score == 50.0
        assert analysis.trend is Trend.STABLE
        assert analysis.delta == 0

    def test_twenty_percent_reduction(self) -> None:
        analysis = score(100, 80)

        assert analysis.delta == 20
        assert analysis.pct_improvement == pytest.approx(20.0)
        assert analysis.efficiency_score == pytest.approx(90.0)
        assert analysis.trend is Trend.IMPROVING

    def test_growth_lowers_score(self) -> None:
        analysis = score(100, 110)

        assert analysis.efficiency_score == pytest.approx(30.0)
        assert analysis.trend is Trend.DECLINING

    def test_small_change_is_stable(self) -> None:
        assert score(100, 97).trend is Trend.STABLE
        assert score(100, 104).trend is Trend.STABLE

    @pytest.mark.parametrize(
        ("previous", "current", "expected"),
        [
            (100, 0, 100.0),
            (100, 500, 0.0),
        ],
    )
    def test_score_is_clamped(self, previous: int, current: int, expected: float) -> None:
        assert score(previous, current).efficiency_score == expected

    def test_to_dict(self) -> None:
        data = score(200, 100).to_dict()

        assert data["trend"] == "improving"
        assert data["efficiency_score"] == 100.0


class TestTrendOverSeries:
    """Tests for trend_over_series(counts)."""

    @pytest.mark.parametrize("counts", [[], [120]])
    def test_short_series_is_stable(self, counts: list[int]) -> None:
        result = trend_over_series(counts)

        assert result.trend is Trend.STABLE
        assert result.scores == [50.0]
        assert result.average_improvement == 0.0

    def test_steadily_shrinking_messages_improve(self) -> None:
        result = trend_over_series([100, 90, 81])

        assert result.trend is Trend.IMPROVING
        assert result.average_improvement == pytest.approx(10.0)
        assert len(result.scores) == 3
        assert result.scores[0] == 50.0

    def test_growing_messages_decline(self) -> None:
        result = trend_over_series([100, 150])

        assert result.trend is Trend.DECLINING
        assert result.worst_improvement == pytest.approx(-50.0)

    def test_best_and_worst(self) -> None:
        result = trend_over_series([100, 50, 100])

        assert result.best_improvement == pytest.approx(50.0)
        assert result.worst_improvement == pytest.approx(-100.0)
