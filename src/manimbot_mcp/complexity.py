"""Keyword-based complexity tiers that steer the target animation length."""

from __future__ import annotations

from enum import Enum


class ComplexityTier(str, Enum):
    """How much mathematical content a prompt implies."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


COMPLEX_KEYWORDS: tuple[str, ...] = (
    "quantum",
    "relativity",
    "calculus",
    "theorem",
    "theory",
    "proof",
    "derive",
    "integrate",
    "differential",
)

MODERATE_KEYWORDS: tuple[str, ...] = (
    "explain",
    "how does",
    "why",
    "concept",
    "principle",
)


def assess_complexity(prompt: str) -> ComplexityTier:
    """Classify *prompt* into a tier; complex keywords are checked first."""
    text = prompt.lower()
    if any(keyword in text for keyword in COMPLEX_KEYWORDS):
        return ComplexityTier.COMPLEX
    if any(keyword in text for keyword in MODERATE_KEYWORDS):
        return ComplexityTier.MODERATE
    return ComplexityTier.SIMPLE
