"""Animation tools: 2 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..complexity import assess_complexity
from ..config import get_config
from ..errors import make_tool_error
from ..persistence import get_store
from ..prompts.animation import DURATION_GUIDANCE
from ..service import generate_animation
from ..tracing import trace
from ..types import PromptParam, UserRef

logger = logging.getLogger(__name__)

animation_server = FastMCP("animation")


@animation_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace(name="animation_generate", span_type="TOOL")
async def animation_generate(
    prompt: PromptParam,
    user_id: UserRef,
    chat_id: Annotated[str | None, Field(
        description="Continue an existing chat; omit to start a new one",
    )] = None,
) -> dict:
    """Generate, render and publish an explanatory Manim animation.

    Gemini writes the scene, manim renders it and the result is checked
    against the minimum duration. Coordinate-shape errors and too-short
    videos get up to two guided retries.

    Args:
        prompt: Concept to animate.
        user_id: Registered user's external ID.
        chat_id: Existing chat to append to.

    Returns:
        Dict with chat_id, message_id, video_url, explanation, duration and
        created_at, or an error dict on failure.
    """
    try:
        response = await generate_animation(get_store(), user_id, prompt, chat_id)
    except Exception as exc:
        logger.warning("animation_generate failed: %s", exc)
        return make_tool_error(exc)
    return response.model_dump(mode="json")


@animation_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="animation_assess", span_type="TOOL")
async def animation_assess(prompt: PromptParam) -> dict:
    """Preview the complexity tier and target duration for a prompt.

    No model call is made.

    Returns:
        Dict with tier, duration_guidance, min_duration_seconds and max_retries.
    """
    cfg = get_config()
    tier = assess_complexity(prompt)
    return {
        "tier": tier.value,
        "duration_guidance": DURATION_GUIDANCE[tier],
        "min_duration_seconds": cfg.min_duration_seconds,
        "max_retries": cfg.max_retries,
    }
