"""Evolution-marker detection and translation extraction.

Heuristic, text-only detectors; each one is a plain predicate so they
can be tested and swapped independently of the orchestrator.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from llm_talk.core.constants import (
    ABBREVIATION_MIN_ITERATION,
    BREAKTHROUGH_MAX_LENGTH,
    BREAKTHROUGH_MIN_ITERATION,
    MarkerType,
)


TRANSLATION_RE = re.compile(r"\[(?:translation|meaning|decode):\s*([^\]]+)\]", re.IGNORECASE)
_ARROW_GLYPHS = ("→", "⇒")
_NOTATION_TOKENS = ("//", "::")
_CAPS_RUN_RE = re.compile(r"\b[A-Z]{2,}\b")

MarkerDetector = Callable[[str, int], bool]


def extract_translation(text: str) -> str | None:
    """Return the first [translation|meaning|decode: ...] gloss, if any."""
    match = TRANSLATION_RE.search(text or "")
    return match.group(1).strip() if match else None


def has_arrow_glyph(text: str, iteration: int) -> bool:
    return any(glyph in text for glyph in _ARROW_GLYPHS)


def has_caps_run(text: str, iteration: int) -> bool:
    return iteration > ABBREVIATION_MIN_ITERATION and bool(_CAPS_RUN_RE.search(text))


def has_notation(text: str, iteration: int) -> bool:
    return any(token in text for token in _NOTATION_TOKENS)


def is_short_late_message(text: str, iteration: int) -> bool:
    return iteration > BREAKTHROUGH_MIN_ITERATION and len(text) < BREAKTHROUGH_MAX_LENGTH


DETECTORS: tuple[tuple[MarkerType, MarkerDetector], ...] = (
    (MarkerType.SYMBOL_INTRODUCTION, has_arrow_glyph),
    (MarkerType.ABBREVIATION_USAGE, has_caps_run),
    (MarkerType.NOTATION_SYSTEM, has_notation),
    (MarkerType.EFFICIENCY_BREAKTHROUGH, is_short_late_message),
)


def detect_markers(text: str, iteration: int) -> list[str]:
    """Return the marker tags that apply to a message, in detector order.

    Args:
        text: Emitted message text.
        iteration: 1-based iteration number of the message.
    """
    text = text or ""
    return [marker.value for marker, detect in DETECTORS if detect(text, iteration)]


__all__ = [
    "DETECTORS",
    "TRANSLATION_RE",
    "detect_markers",
    "extract_translation",
]
