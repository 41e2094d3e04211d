"""Gemini calls for animation code and the companion explanation."""

from __future__ import annotations

import logging

from .client import GeminiClient
from .complexity import ComplexityTier
from .config import get_config
from .extraction import SCENE_NAME
from .prompts.animation import build_explanation_prompt, build_generation_prompt

logger = logging.getLogger(__name__)


async def generate_animation_code(
    prompt: str,
    tier: ComplexityTier,
    prior_error_context: str | None = None,
) -> str:
    """Ask Gemini for Manim code animating *prompt*.

    When *prior_error_context* is set, the previous failure is echoed back
    with a list of common fixes so the retry is guided rather than blind.

    Returns:
        The raw model text (code extraction happens separately).

    Raises:
        ConfigurationError: No API key.
        ProviderError: The remote call failed.
        EmptyResponseError: Gemini returned no text.
    """
    cfg = get_config()
    contents = build_generation_prompt(
        prompt,
        tier,
        prior_error_context,
        scene_name=SCENE_NAME,
        min_duration=cfg.min_duration_seconds,
    )
    logger.debug(
        "Generating code (tier=%s, guided=%s, %d chars)",
        tier.value,
        bool(prior_error_context),
        len(contents),
    )
    return await GeminiClient.generate(contents)


async def explain_concept(prompt: str) -> str:
    """Ask Gemini for a 3-5 paragraph plain-language explanation of *prompt*."""
    return await GeminiClient.generate(build_explanation_prompt(prompt))
