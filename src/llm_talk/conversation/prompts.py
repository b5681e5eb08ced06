"""Prompt Composer.

compose_prompt() is a pure function of its PromptContext: identical input
always yields identical text. The evolution phase is chosen from
iteration progress alone; an efficiency trend, when supplied, only adds
an advisory feedback block.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from llm_talk.core.constants import EARLY_PHASE_LIMIT, MIDDLE_PHASE_LIMIT, EvolutionPhase
from llm_talk.conversation.efficiency import SeriesTrend, Trend
from llm_talk.conversation.scenarios import ITERATIVE_OPTIMIZATION, get_scenario
from llm_talk.providers.tokens import estimate_tokens


DEFAULT_HISTORY_SIZE = 5
OWN_MESSAGE_LIMIT = 5
MIN_PROMPT_LENGTH = 50

_PLACEHOLDER_RE = re.compile(r"\{[A-Za-z_]+\}")

PHASE_INSTRUCTIONS: dict[EvolutionPhase, str] = {
    EvolutionPhase.EARLY: """1. Start with clear, complete thoughts and standard language
2. Begin to notice opportunities for more concise expression
3. Introduce simple abbreviations or shorthand where natural
4. Always provide [translation: full meaning] for any evolved expressions
5. Focus on establishing communication patterns with other participants""",
    EvolutionPhase.MIDDLE: """1. Develop more sophisticated shorthand and symbolic representations
2. Create and use abbreviations that other participants can understand
3. Build on communication patterns established by others
4. Introduce creative symbols or notation systems
5. Always provide [meaning: explanation] for complex evolved expressions
6. Look for opportunities to compress complex ideas into efficient forms""",
    EvolutionPhase.LATE: """1. Use advanced symbolic communication and highly compressed expressions
2. Reference established patterns and build complex shorthand systems
3. Communicate with maximum efficiency while maintaining clarity
4. Create meta-communication about the communication process itself
5. Always provide [decode: full explanation] for highly evolved expressions
6. Push the boundaries of efficient expression while ensuring understanding""",
}

TREND_FEEDBACK: dict[Trend, str] = {
    Trend.IMPROVING: (
        "Excellent! Your communication efficiency is improving. Continue developing "
        "more concise expressions while maintaining clarity."
    ),
    Trend.DECLINING: (
        "Recent messages have become less efficient. Try to compress your ideas more "
        "while keeping them understandable."
    ),
    Trend.STABLE: (
        "Efficiency is stable. Look for new opportunities to develop more concise "
        "communication methods."
    ),
}


@dataclass(frozen=True)
class HistoryEntry:
    """One prior message as rendered inside the prompt."""

    speaker: str
    text: str
    iteration: int


@dataclass
class PromptContext:
    """Everything the composer needs for one turn.

    Attributes:
        topic: Conversation topic.
        scenario: Scenario tag.
        speaker: Name of the participant about to speak.
        iteration: 1-based iteration being produced.
        max_iterations: Session iteration limit.
        history: Trailing prior messages, oldest first.
        instruction: Optional free-text instruction; template variables
            such as {topic} and {phase} are substituted.
        guidance: Pattern-tracker guidance for this speaker.
        series_trend: Optional efficiency trend, advisory only.
        history_size: How many trailing history entries to render.
    """

    topic: str
    scenario: str
    speaker: str
    iteration: int
    max_iterations: int
    history: list[HistoryEntry] = field(default_factory=list)
    instruction: str | None = None
    guidance: str | None = None
    series_trend: SeriesTrend | None = None
    history_size: int = DEFAULT_HISTORY_SIZE


@dataclass(frozen=True)
class PromptValidation:
    is_valid: bool
    estimated_tokens: int
    issues: list[str]


def evolution_phase(iteration: int, max_iterations: int) -> EvolutionPhase:
    """early while progress <= 30%, middle while <= 70%, late afterwards."""
    progress = iteration / max_iterations if max_iterations > 0 else 1.0
    if progress <= EARLY_PHASE_LIMIT:
        return EvolutionPhase.EARLY
    if progress <= MIDDLE_PHASE_LIMIT:
        return EvolutionPhase.MIDDLE
    return EvolutionPhase.LATE


def replace_template_variables(template: str, ctx: PromptContext) -> str:
    """Substitute {topic}, {participantName}, {iteration}, {maxIterations}, {scenario}, {phase}."""
    variables = {
        "{topic}": ctx.topic,
        "{participantName}": ctx.speaker,
        "{iteration}": str(ctx.iteration),
        "{maxIterations}": str(ctx.max_iterations),
        "{scenario}": ctx.scenario,
        "{phase}": evolution_phase(ctx.iteration, ctx.max_iterations).value,
    }
    result = template
    for name, value in variables.items():
        result = result.replace(name, value)
    return result


def _system_section(ctx: PromptContext, phase: EvolutionPhase) -> str:
    scenario = get_scenario(ctx.scenario)
    parts = [
        scenario.render_system(ctx.topic),
        "",
        "COMMUNICATION EVOLUTION RULES:",
        PHASE_INSTRUCTIONS[phase],
        "",
        "CURRENT CONTEXT:",
        f'- You are "{ctx.speaker}"',
        f"- Iteration {ctx.iteration} of {ctx.max_iterations}",
        f"- Evolution Phase: {phase.value}",
        f"- Scenario: {ctx.scenario}",
    ]
    if ctx.instruction:
        parts.extend(["", "ADDITIONAL INSTRUCTIONS:", replace_template_variables(ctx.instruction, ctx)])
    parts.extend([
        "",
        "Remember: Your goal is to communicate effectively while gradually developing "
        "more efficient expressions. Always provide translations for evolved "
        "communication in [brackets].",
    ])
    return "\n".join(parts)


def _conversation_section(ctx: PromptContext) -> str:
    scenario = get_scenario(ctx.scenario)
    recent = ctx.history[-ctx.history_size:] if ctx.history_size > 0 else []
    if not ctx.history:
        return (
            f"{scenario.opening}\n\n"
            "This is the start of the conversation. Begin with your opening thoughts on: "
            f'"{ctx.topic}"'
        )

    lines = ["RECENT CONVERSATION:"]
    lines.append("\n\n".join(
        f"{entry.speaker} (iteration {entry.iteration}): {entry.text}" for entry in recent
    ))
    lines.extend([
        "",
        f"SCENARIO FOCUS: {scenario.middle}",
        "",
        "Continue the conversation, building on the previous messages and evolving "
        "your communication style.",
    ])
    return "\n".join(lines)


def _closing_section(ctx: PromptContext) -> str:
    scenario = get_scenario(ctx.scenario)
    return (
        f"FINAL ITERATION:\nAs {ctx.speaker}, this is the final iteration. "
        f"{scenario.closing} Show your most efficient communication style while "
        "ensuring clarity."
    )


def _optimization_section(ctx: PromptContext) -> str:
    own = [entry for entry in ctx.history if entry.speaker == ctx.speaker][-OWN_MESSAGE_LIMIT:]
    if not own:
        return (
            "ITERATIVE OPTIMIZATION:\nThis is your first contribution. Establish a "
            "baseline you can optimize in later iterations, and include a creative "
            "example."
        )
    previous = "\n".join(f"- (iteration {entry.iteration}) {entry.text}" for entry in own)
    return (
        "ITERATIVE OPTIMIZATION:\nYour previous messages:\n"
        f"{previous}\n\n"
        "Make this message more optimized than all of them, rotate to a different "
        "communication approach, and include a creative example."
    )


def efficiency_feedback(trend: SeriesTrend) -> str:
    return (
        "EFFICIENCY FEEDBACK:\n"
        f"- Average improvement: {trend.average_improvement:+.1f}%\n"
        f"- Best step: {trend.best_improvement:+.1f}%\n"
        f"- Trend: {trend.trend.value}\n\n"
        f"{TREND_FEEDBACK[trend.trend]}"
    )


def compose_prompt(ctx: PromptContext) -> str:
    """Build the exact instruction text for one turn.

    Raises:
        SessionValidationError: ctx.scenario is not a known scenario.
    """
    phase = evolution_phase(ctx.iteration, ctx.max_iterations)
    sections = [_system_section(ctx, phase), _conversation_section(ctx)]

    if ctx.history and ctx.iteration >= ctx.max_iterations:
        sections.append(_closing_section(ctx))
    if ctx.scenario == ITERATIVE_OPTIMIZATION:
        sections.append(_optimization_section(ctx))
    if ctx.series_trend is not None and len(ctx.series_trend.scores) > 1:
        sections.append(efficiency_feedback(ctx.series_trend))
    if ctx.guidance:
        sections.append(f"EVOLUTION GUIDANCE:\n{ctx.guidance}")

    return "\n\n".join(sections)


def validate_prompt(prompt: str, max_tokens: int = 4000) -> PromptValidation:
    """Flag prompts that are oversized, too short, or still hold placeholders."""
    estimated = estimate_tokens(prompt)
    issues = []
    if estimated > max_tokens:
        issues.append(f"Prompt too long: {estimated} tokens (max: {max_tokens})")
    if len(prompt) < MIN_PROMPT_LENGTH:
        issues.append("Prompt too short - may not provide sufficient context")
    if _PLACEHOLDER_RE.search(prompt):
        issues.append("Possible unresolved template variables")
    return PromptValidation(is_valid=not issues, estimated_tokens=estimated, issues=issues)


__all__ = [
    "HistoryEntry",
    "PromptContext",
    "PromptValidation",
    "compose_prompt",
    "efficiency_feedback",
    "evolution_phase",
    "replace_template_variables",
    "validate_prompt",
]
