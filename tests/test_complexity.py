"""Tests for keyword-based complexity assessment."""

from __future__ import annotations

import pytest

from manimbot_mcp.complexity import ComplexityTier, assess_complexity


class TestAssessComplexity:
    @pytest.mark.parametrize("prompt", [
        "quantum entanglement proof",
        "Prove the fundamental THEOREM of algebra",
        "how do you integrate by parts",
        "special relativity",
    ])
    def test_complex(self, prompt):
        assert assess_complexity(prompt) is ComplexityTier.COMPLEX

    @pytest.mark.parametrize("prompt", [
        "explain derivatives",
        "How does a transformer attend?",
        "why is the sky blue",
        "the principle of least action",
    ])
    def test_moderate(self, prompt):
        assert assess_complexity(prompt) is ComplexityTier.MODERATE

    @pytest.mark.parametrize("prompt", ["a circle turning into a square", "bubble sort", ""])
    def test_simple(self, prompt):
        assert assess_complexity(prompt) is ComplexityTier.SIMPLE

    @pytest.mark.parametrize("prompt", [
        "explain quantum tunnelling",
        "why does the proof work",
        "explain the concept behind calculus",
    ])
    def test_complex_wins_over_moderate(self, prompt):
        assert assess_complexity(prompt) is ComplexityTier.COMPLEX
