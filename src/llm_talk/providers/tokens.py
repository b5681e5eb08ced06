"""Token-count estimation used when a provider omits usage metadata.

These are approximations of each vendor's tokenizer, not exact counts.
"""

import math
import re


_PUNCTUATION_RE = re.compile(r"[.,!?;:'\"()\[\]{}]")


def estimate_tokens(text: str) -> int:
    """Generic estimate: about four characters per token."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def estimate_openai_tokens(text: str) -> int:
    """Word-length heuristic modelled on GPT sub-word splitting."""
    if not text:
        return 0

    count = 0
    for word in text.split():
        if len(word) <= 4:
            count += 1
        elif len(word) <= 8:
            count += 2
        else:
            count += math.ceil(len(word) / 4)
        count += len(_PUNCTUATION_RE.findall(word))
    return count


def estimate_claude_tokens(text: str) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / 3.8)


def estimate_gemini_tokens(text: str) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / 4.2)


def estimate_perplexity_tokens(text: str) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / 4.1)


_ESTIMATORS = {
    "openai": estimate_openai_tokens,
    "claude": estimate_claude_tokens,
    "gemini": estimate_gemini_tokens,
    "perplexity": estimate_perplexity_tokens,
}


def estimate_for_provider(text: str, provider: str) -> int:
    """Provider-specific estimate, generic for unknown tags."""
    return _ESTIMATORS.get(provider, estimate_tokens)(text)
