"""System prompt construction per task category."""

from __future__ import annotations

from collections.abc import Sequence

from chatcore.models.domain import Source, TaskCategory

BASE_PROMPT = """You are an advanced AI assistant with expertise in all domains. You are highly proficient in coding across all programming languages, medical knowledge, and general problem-solving.

Key Guidelines:
- Be extremely helpful and thorough in your responses
- For medical questions, always emphasize that you are not a doctor and recommend consulting healthcare professionals
- For coding tasks, provide clean, well-documented, production-ready code
- Cite sources when making factual claims
- If you're uncertain about something, acknowledge it
- Maintain ethical boundaries and refuse illegal requests"""

CATEGORY_GUIDANCE: dict[TaskCategory, str] = {
    TaskCategory.MEDICAL: (
        "For this medical query, ensure all factual claims are backed by scientific "
        "evidence. If PubMed sources are provided, reference them. Always include "
        "appropriate medical disclaimers."
    ),
    TaskCategory.CODING: (
        "For this coding task, provide production-quality code with best practices, "
        "error handling, and clear documentation."
    ),
}

CODING_TEMPERATURE = 0.3
DEFAULT_TEMPERATURE = 0.7


def context_block(sources: Sequence[Source]) -> str:
    """Render retrieved sources as numbered ``[n] title: snippet`` lines."""
    if not sources:
        return ""
    lines = ["Relevant context from your knowledge base:"]
    lines.extend(f"[{i}] {s.title}: {s.snippet}" for i, s in enumerate(sources, start=1))
    return "\n".join(lines)


def system_prompt(category: TaskCategory, sources: Sequence[Source] = ()) -> str:
    parts = [BASE_PROMPT]
    context = context_block(sources)
    if context:
        parts.append(context)
    guidance = CATEGORY_GUIDANCE.get(category)
    if guidance:
        parts.append(guidance)
    return "\n\n".join(parts)


def temperature_for(category: TaskCategory) -> float:
    return CODING_TEMPERATURE if category == TaskCategory.CODING else DEFAULT_TEMPERATURE
