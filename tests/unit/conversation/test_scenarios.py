"""Unit tests for the scenario catalog."""

import pytest

from llm_talk.conversation.scenarios import SCENARIOS, get_scenario
from llm_talk.core.exceptions import SessionValidationError


class TestScenarioCatalog:
    """Tests for SCENARIOS and get_scenario()."""

    def test_catalog_tags(self) -> None:
        assert set(SCENARIOS) == {
            "protocol-evolution",
            "semantic-compression",
            "symbol-invention",
            "meta-communication",
            "iterative-optimization",
        }

    @pytest.mark.parametrize("tag", sorted(SCENARIOS))
    def test_system_template_renders_topic(self, tag: str) -> None:
        rendered = get_scenario(tag).render_system("tide pools")

        assert "tide pools" in rendered
        assert "{topic}" not in rendered

    @pytest.mark.parametrize("tag", sorted(SCENARIOS))
    def test_recommended_iterations_are_ordered(self, tag: str) -> None:
        r = get_scenario(tag).recommended_iterations

        assert r.min <= r.default <= r.max

    def test_unknown_scenario(self) -> None:
        with pytest.raises(SessionValidationError) as exc_info:
            get_scenario("unknown")

        assert exc_info.value.field == "scenario"
        assert exc_info.value.value == "unknown"

    def test_to_dict(self) -> None:
        data = get_scenario("symbol-invention").to_dict()

        assert data["tag"] == "symbol-invention"
        assert data["evaluation_criteria"]
