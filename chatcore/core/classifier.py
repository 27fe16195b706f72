"""Lexical task classifier.

Maps a user message to exactly one :class:`TaskCategory`.  Rules are checked
in a fixed order and the first match wins; that order is the tie-break
policy.  There is no model or embedding step, so the result for a given
input never changes.
"""

from __future__ import annotations

import re

from chatcore.models.domain import TaskCategory

MEDICAL_TERMS = (
    "medical",
    "health",
    "disease",
    "symptom",
    "treatment",
    "diagnosis",
    "pubmed",
)
CODING_TERMS = ("code", "function", "debug", "error", "implement", "algorithm")
THINKING_TERMS = (
    "analyze",
    "think through",
    "reasoning",
    "step by step",
    "explain why",
)
LONGFORM_TERMS = (
    "write an article",
    "write an essay",
    "detailed explanation",
    "comprehensive",
)
MULTILINGUAL_TERMS = ("translate", "language")

LONGFORM_MIN_CHARS = 500

_LANGUAGE_NAME = re.compile(r"\b(python|javascript|typescript|java|c\+\+|rust|go)\b")
# CJK unified ideographs, Arabic, Cyrillic
_NON_LATIN_SCRIPT = re.compile(r"[\u4e00-\u9fff\u0600-\u06ff\u0400-\u04ff]")


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


class TaskClassifier:
    """Stateless first-match-wins classifier."""

    def classify(self, text: str) -> TaskCategory:
        lowered = text.lower()

        if _contains_any(lowered, MEDICAL_TERMS):
            return TaskCategory.MEDICAL
        if _contains_any(lowered, CODING_TERMS) or _LANGUAGE_NAME.search(lowered):
            return TaskCategory.CODING
        if _contains_any(lowered, THINKING_TERMS):
            return TaskCategory.THINKING
        if _contains_any(lowered, LONGFORM_TERMS) or len(text) > LONGFORM_MIN_CHARS:
            return TaskCategory.LONGFORM
        if _contains_any(lowered, MULTILINGUAL_TERMS) or _NON_LATIN_SCRIPT.search(text):
            return TaskCategory.MULTILINGUAL
        return TaskCategory.GENERAL


def classify(text: str) -> TaskCategory:
    """Module-level shortcut for :meth:`TaskClassifier.classify`."""
    return _DEFAULT.classify(text)


_DEFAULT = TaskClassifier()
