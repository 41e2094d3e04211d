"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

# ── Annotated aliases ────────────────────────────────────────────────────────

PromptParam = Annotated[str, Field(
    min_length=1,
    max_length=2000,
    description="Concept to animate, e.g. 'explain derivatives'",
)]
UserRef = Annotated[str, Field(
    min_length=1,
    description="External identity of a registered user (the clerk_id used at registration)",
)]
ChatIdParam = Annotated[str, Field(min_length=1, description="Chat ID returned by animation_generate or chat_list")]
EmailParam = Annotated[str, Field(min_length=3, description="User email address")]
