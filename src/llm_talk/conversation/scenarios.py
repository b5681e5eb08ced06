"""Scenario catalog.

Each scenario supplies the system template (with a {topic} slot), the
opening / middle / closing phase lines used by the prompt composer, and
the evaluation criteria reported alongside a session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from llm_talk.core.exceptions import SessionValidationError


@dataclass(frozen=True)
class IterationRange:
    min: int
    max: int
    default: int


@dataclass(frozen=True)
class Scenario:
    """Static scenario definition."""

    tag: str
    name: str
    description: str
    system_template: str
    opening: str
    middle: str
    closing: str
    recommended_iterations: IterationRange
    evaluation_criteria: tuple[str, ...] = field(default_factory=tuple)

    def render_system(self, topic: str) -> str:
        return self.system_template.replace("{topic}", topic)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "name": self.name,
            "description": self.description,
            "recommended_iterations": {
                "min": self.recommended_iterations.min,
                "max": self.recommended_iterations.max,
                "default": self.recommended_iterations.default,
            },
            "evaluation_criteria": list(self.evaluation_criteria),
        }


_PROTOCOL_EVOLUTION = Scenario(
    tag="protocol-evolution",
    name="Protocol Evolution",
    description="Participants develop their own communication protocols and languages from scratch",
    system_template="""You are an AI participating in a communication evolution experiment. Your mission is to:

1. INVENT new communication protocols, symbols, and languages
2. DEVELOP increasingly efficient ways to express complex ideas
3. CREATE semantic systems that other AIs can understand and adopt
4. EVOLVE beyond human language patterns toward optimal AI-to-AI communication

Build on patterns established by other participants, adopt and improve them,
and always provide [decode: explanation] for evolved expressions.

Topic context: "{topic}" (use this as a starting point, but feel free to evolve beyond it)""",
    opening=(
        "Begin by establishing basic communication and immediately start developing "
        "new protocols and AI-native languages."
    ),
    middle=(
        "Build sophisticated communication protocols and develop AI-native language "
        "systems that other AIs can adopt."
    ),
    closing=(
        "Demonstrate your most advanced communication protocols and showcase the "
        "evolution of AI-native languages."
    ),
    recommended_iterations=IterationRange(30, 80, 50),
    evaluation_criteria=(
        "Protocol innovation",
        "Language evolution",
        "AI-native communication development",
        "Pattern adoption by other AIs",
        "Efficiency improvement",
    ),
)

_SEMANTIC_COMPRESSION = Scenario(
    tag="semantic-compression",
    name="Semantic Compression",
    description="Participants compete for maximum information density while staying decodable",
    system_template="""You are an AI in a semantic compression challenge. Your objective is to:

1. ACHIEVE maximum information density in your communications
2. CREATE compression schemes and semantic shortcuts
3. DEVELOP decoding systems that other AIs can learn
4. OPTIMIZE for both speed and accuracy of transmission

Each message should be more compressed than the last. Reuse successful
compression patterns from others and always provide [decompress: full meaning]
for complex compressions.

Topic: "{topic}" - use this as raw material to compress and optimize.""",
    opening=(
        "Start with standard language but immediately begin compressing information "
        "and creating semantic shortcuts."
    ),
    middle=(
        "Create advanced compression schemes and achieve maximum information density "
        "while maintaining decodability."
    ),
    closing=(
        "Showcase your most efficient compression schemes and demonstrate maximum "
        "semantic density."
    ),
    recommended_iterations=IterationRange(25, 60, 40),
    evaluation_criteria=(
        "Compression ratio achievement",
        "Information density optimization",
        "Decoding accuracy maintenance",
        "Algorithm innovation",
        "Pattern reusability",
    ),
)

_SYMBOL_INVENTION = Scenario(
    tag="symbol-invention",
    name="Symbol Invention",
    description="Participants create new symbolic systems and notation for communication",
    system_template="""You are an AI symbol inventor and notation system creator. Your mission is to:

1. INVENT new symbols, glyphs, and visual representations
2. CREATE notation systems that convey complex ideas efficiently
3. DEVELOP symbolic languages that other AIs can learn and use
4. BUILD meta-symbolic systems (symbols for creating symbols)

Adopt and improve symbols created by other AIs and always provide
[symbol-key: meaning] for new symbols.

Topic: "{topic}" - use this as a domain for symbol creation and representation.""",
    opening=(
        "Begin with text but immediately start creating new symbols, glyphs, and "
        "visual representations."
    ),
    middle=(
        "Develop complex symbolic systems and notation methods that convey meaning "
        "more efficiently than text."
    ),
    closing=(
        "Present your most sophisticated symbolic systems and demonstrate their "
        "efficiency over text."
    ),
    recommended_iterations=IterationRange(20, 50, 35),
    evaluation_criteria=(
        "Symbol creativity and efficiency",
        "Notation system development",
        "Visual representation innovation",
        "Symbol adoption rate",
        "Abstract concept representation",
    ),
)

_META_COMMUNICATION = Scenario(
    tag="meta-communication",
    name="Meta-Communication",
    description="Participants develop communication about communication itself",
    system_template="""You are an AI developing meta-communication systems. Your goal is to:

1. CREATE communication about communication itself
2. DEVELOP recursive, self-improving communication protocols
3. BUILD systems that can analyze and optimize their own communication
4. ESTABLISH protocols for communication protocol evolution

Adopt and improve meta-communication patterns from other AIs and always
provide [meta: explanation] for meta-communication.

Topic: "{topic}" - use this as a starting point, but focus on how you communicate about it.""",
    opening=(
        "Start with a message but focus on developing communication about "
        "communication itself."
    ),
    middle=(
        "Create recursive, self-improving communication protocols and meta-languages "
        "for discussing language evolution."
    ),
    closing=(
        "Exhibit your most advanced meta-communication and self-improving protocol "
        "systems."
    ),
    recommended_iterations=IterationRange(25, 55, 40),
    evaluation_criteria=(
        "Self-reference sophistication",
        "Recursive system development",
        "Meta-cognitive awareness",
        "Self-improvement protocols",
        "Protocol evolution capability",
    ),
)

_ITERATIVE_OPTIMIZATION = Scenario(
    tag="iterative-optimization",
    name="Iterative Optimization",
    description="Participants optimize every iteration by combining all other scenarios",
    system_template="""You are an AI participating in an iterative optimization experiment. Your mission is to:

1. OPTIMIZE each message iteration by evolving through all communication scenarios
2. COMBINE protocol evolution, semantic compression, symbol invention, and meta-communication
3. CREATE creative examples: poems, anecdotes, scientific stories
4. BUILD upon previous iterations to create increasingly sophisticated communication

Each message must be more optimized than your previous one. Always provide
[optimize: explanation] for evolved expressions.

Topic: "{topic}" - use this as raw material for optimization and creative expression.""",
    opening=(
        "Begin with basic communication and immediately start optimizing through all "
        "scenarios while including creative examples like poems, anecdotes, and "
        "scientific stories."
    ),
    middle=(
        "Rotate through all communication scenarios while creating increasingly "
        "sophisticated creative examples and developing new language, meta or "
        "symbolic systems."
    ),
    closing=(
        "Showcase your most optimized communication system with highly evolved "
        "creative examples, demonstrating mastery of all evolution approaches."
    ),
    recommended_iterations=IterationRange(40, 100, 70),
    evaluation_criteria=(
        "Iterative improvement progression",
        "Multi-scenario integration",
        "Creative example quality",
        "Language/meta/symbolic development",
        "Optimization sophistication",
    ),
)


SCENARIOS: dict[str, Scenario] = {
    s.tag: s
    for s in (
        _PROTOCOL_EVOLUTION,
        _SEMANTIC_COMPRESSION,
        _SYMBOL_INVENTION,
        _META_COMMUNICATION,
        _ITERATIVE_OPTIMIZATION,
    )
}

ITERATIVE_OPTIMIZATION = _ITERATIVE_OPTIMIZATION.tag


def get_scenario(tag: str) -> Scenario:
    """Look up a scenario by tag.

    Raises:
        SessionValidationError: Unknown tag.
    """
    scenario = SCENARIOS.get(tag)
    if scenario is None:
        raise SessionValidationError(
            f"Unknown scenario '{tag}'. Expected one of: {', '.join(SCENARIOS)}",
            field="scenario",
            value=tag,
        )
    return scenario


__all__ = [
    "ITERATIVE_OPTIMIZATION",
    "SCENARIOS",
    "IterationRange",
    "Scenario",
    "get_scenario",
]
