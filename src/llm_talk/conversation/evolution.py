"""Communication Evolution Pattern Tracker.

Mines emitted text for reusable shorthand and keeps a registry keyed by
(kind, literal). Three independent extractors run on every message:

    symbol        [literal: meaning]
    abbreviation  ABC: trailing text        (2-4 capital letters)
    protocol      CamelCase words built around "Protocol"

The registry lives for one session and is rebuilt by replaying message
history on reload.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from llm_talk.core.logging import get_logger


logger = get_logger(__name__)


class PatternKind(str, Enum):
    SYMBOL = "symbol"
    ABBREVIATION = "abbreviation"
    PROTOCOL = "protocol"


class CommunicationLevel(str, Enum):
    """Coarse observability label derived from registry size."""

    BASIC = "basic"
    EVOLVING = "evolving"
    ADVANCED = "advanced"
    HIGHLY_EVOLVED = "highly-evolved"


GUIDANCE_PATTERN_COUNT = 5
RECENT_LITERAL_COUNT = 10
EMPTY_REGISTRY_GUIDANCE = (
    "Start developing new communication patterns. Create symbols, "
    "abbreviations, or protocols that other AIs can adopt."
)

# Gloss markers are read as translations, not as invented symbols
_GLOSS_LITERALS = frozenset({"translation", "meaning", "decode"})

_SYMBOL_RE = re.compile(r"\[([^:\]]+):\s*([^\]]+)\]")
_ABBREVIATION_RE = re.compile(r"\b([A-Z]{2,4}):\s*([^.\n]+)")
_PROTOCOL_RE = re.compile(r"([A-Z][a-z]+Protocol|Protocol[A-Z][a-z]+)")


# =============================================================================
# Extractors
# =============================================================================

@dataclass(frozen=True)
class PatternHit:
    """One extractor match."""

    kind: PatternKind
    literal: str
    meaning: str
    raw: str


def extract_symbols(text: str) -> list[PatternHit]:
    hits = []
    for match in _SYMBOL_RE.finditer(text):
        literal = match.group(1).strip()
        meaning = match.group(2).strip()
        if not literal or not meaning or literal.lower() in _GLOSS_LITERALS:
            continue
        hits.append(PatternHit(PatternKind.SYMBOL, literal, meaning, match.group(0)))
    return hits


def extract_abbreviations(text: str) -> list[PatternHit]:
    hits = []
    for match in _ABBREVIATION_RE.finditer(text):
        meaning = match.group(2).strip()
        if meaning:
            hits.append(
                PatternHit(PatternKind.ABBREVIATION, match.group(1), meaning, match.group(0))
            )
    return hits


def extract_protocols(text: str) -> list[PatternHit]:
    return [
        PatternHit(
            PatternKind.PROTOCOL,
            match.group(1),
            f"Communication protocol: {match.group(1)}",
            match.group(0),
        )
        for match in _PROTOCOL_RE.finditer(text)
    ]


def _mentions(text: str, literal: str) -> bool:
    if literal.replace("_", "").isalnum():
        return re.search(rf"\b{re.escape(literal)}\b", text) is not None
    return literal in text


Extractor = Callable[[str], list[PatternHit]]

DEFAULT_EXTRACTORS: tuple[Extractor, ...] = (
    extract_symbols,
    extract_abbreviations,
    extract_protocols,
)


# =============================================================================
# Registry
# =============================================================================

@dataclass
class EvolutionPattern:
    """A mined shorthand unit.

    Attributes:
        literal: The token or symbol itself.
        kind: symbol, abbreviation or protocol.
        first_used_by: Speaker name that introduced it.
        first_used_in: Iteration it was introduced in.
        adoption_count: Number of hits across all messages.
        variations: Distinct raw matches observed.
        meaning: Human-readable gloss.
    """

    literal: str
    kind: PatternKind
    first_used_by: str
    first_used_in: int
    meaning: str
    adoption_count: int = 1
    variations: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind.value, self.literal)

    def describe(self) -> str:
        return f"{self.literal} ({self.meaning}) - used by {self.first_used_by}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.literal,
            "kind": self.kind.value,
            "first_used_by": self.first_used_by,
            "first_used_in": self.first_used_in,
            "adoption_count": self.adoption_count,
            "variations": list(self.variations),
            "meaning": self.meaning,
        }


@dataclass
class EvolutionContext:
    """Registry summary handed to prompt generation and analytics."""

    patterns: list[EvolutionPattern]
    recent_symbols: list[str]
    recent_abbreviations: list[str]
    communication_level: CommunicationLevel
    evolution_score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "recent_symbols": self.recent_symbols,
            "recent_abbreviations": self.recent_abbreviations,
            "communication_level": self.communication_level.value,
            "evolution_score": self.evolution_score,
        }


class PatternTracker:
    """Accumulates EvolutionPatterns for one session.

    Insertion order is preserved, so "recent" means most recently
    created, not most recently adopted.
    """

    def __init__(self, extractors: Iterable[Extractor] = DEFAULT_EXTRACTORS) -> None:
        self._extractors = tuple(extractors)
        self._patterns: dict[tuple[str, str], EvolutionPattern] = {}

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def patterns(self) -> list[EvolutionPattern]:
        return list(self._patterns.values())

    def get(self, kind: PatternKind | str, literal: str) -> EvolutionPattern | None:
        return self._patterns.get((PatternKind(kind).value, literal))

    def update(self, speaker: str, iteration: int, text: str) -> list[EvolutionPattern]:
        """Run every extractor over text and fold the hits into the registry.

        Returns:
            Patterns created by this message.
        """
        text = text or ""
        created: list[EvolutionPattern] = []
        touched: set[tuple[str, str]] = set()
        for extractor in self._extractors:
            for hit in extractor(text):
                key = (hit.kind.value, hit.literal)
                touched.add(key)
                existing = self._patterns.get(key)
                if existing is not None:
                    existing.adoption_count += 1
                    if hit.raw not in existing.variations:
                        existing.variations.append(hit.raw)
                    continue

                pattern = EvolutionPattern(
                    literal=hit.literal,
                    kind=hit.kind,
                    first_used_by=speaker,
                    first_used_in=iteration,
                    meaning=hit.meaning,
                    variations=[hit.raw],
                )
                self._patterns[key] = pattern
                created.append(pattern)

        # Bare reuse of an established literal counts once per message
        for key, pattern in self._patterns.items():
            if key not in touched and _mentions(text, pattern.literal):
                pattern.adoption_count += 1

        if created:
            logger.debug(
                "patterns_created",
                speaker=speaker,
                iteration=iteration,
                patterns=[p.literal for p in created],
            )
        return created

    def replay(self, messages: Iterable[Any]) -> None:
        """Rebuild the registry from message objects with speaker/iteration/text."""
        for message in messages:
            self.update(message.speaker, message.iteration, message.text)

    def recent_patterns(self, count: int) -> list[EvolutionPattern]:
        if count <= 0:
            return []
        return self.patterns[-count:]

    def guidance_for(self, speaker: str) -> str:
        """Coaching text for the next speaker built from the five newest patterns."""
        recent = self.recent_patterns(GUIDANCE_PATTERN_COUNT)
        if not recent:
            return EMPTY_REGISTRY_GUIDANCE

        lines = ["BUILD UPON EXISTING PATTERNS:"]
        lines.extend(f"- {p.describe()}" for p in recent)
        lines.extend([
            "",
            "YOUR TASK:",
            "1. Use and build upon these established patterns",
            "2. Create variations and improvements",
            "3. Introduce 1-2 new patterns that complement existing ones",
            "4. Show you understand the evolved communication system",
        ])
        return "\n".join(lines)

    @property
    def communication_level(self) -> CommunicationLevel:
        total = len(self._patterns)
        if total == 0:
            return CommunicationLevel.BASIC
        if total < 3:
            return CommunicationLevel.EVOLVING
        if total < 8:
            return CommunicationLevel.ADVANCED
        return CommunicationLevel.HIGHLY_EVOLVED

    @property
    def evolution_score(self) -> float:
        total = len(self._patterns)
        if total == 0:
            return 0.0
        mean_adoption = sum(p.adoption_count for p in self._patterns.values()) / total
        distinct_kinds = len({p.kind for p in self._patterns.values()})
        return min(100.0, total * 10 + mean_adoption * 5 + distinct_kinds * 15)

    def _recent_literals(self, kind: PatternKind) -> list[str]:
        literals = [p.literal for p in self._patterns.values() if p.kind is kind]
        return literals[-RECENT_LITERAL_COUNT:]

    def context(self) -> EvolutionContext:
        return EvolutionContext(
            patterns=self.patterns,
            recent_symbols=self._recent_literals(PatternKind.SYMBOL),
            recent_abbreviations=self._recent_literals(PatternKind.ABBREVIATION),
            communication_level=self.communication_level,
            evolution_score=self.evolution_score,
        )


__all__ = [
    "CommunicationLevel",
    "EvolutionContext",
    "EvolutionPattern",
    "PatternHit",
    "PatternKind",
    "PatternTracker",
    "extract_abbreviations",
    "extract_protocols",
    "extract_symbols",
]
