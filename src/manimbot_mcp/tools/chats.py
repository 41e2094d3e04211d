"""Chat history and user tools: 4 tools on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .. import service
from ..errors import make_tool_error
from ..persistence import get_store
from ..tracing import trace
from ..types import ChatIdParam, EmailParam, UserRef

chats_server = FastMCP("chats")


@chats_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="chat_list", span_type="TOOL")
async def chat_list(user_id: UserRef) -> dict:
    """List a user's chats, most recently active first.

    Returns:
        Dict with a ``chats`` list of id/title/created_at/updated_at.
    """
    try:
        chats = service.list_chats(get_store(), user_id)
    except Exception as exc:
        return make_tool_error(exc)
    return {"chats": [c.model_dump(mode="json") for c in chats]}


@chats_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="chat_get", span_type="TOOL")
async def chat_get(user_id: UserRef, chat_id: ChatIdParam) -> dict:
    """Fetch one chat with all of its messages, oldest first."""
    try:
        detail = service.get_chat_detail(get_store(), user_id, chat_id)
    except Exception as exc:
        return make_tool_error(exc)
    return detail.model_dump(mode="json")


@chats_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="chat_delete", span_type="TOOL")
async def chat_delete(user_id: UserRef, chat_id: ChatIdParam) -> dict:
    """Delete a chat and its messages."""
    try:
        service.delete_chat(get_store(), user_id, chat_id)
    except Exception as exc:
        return make_tool_error(exc)
    return {"message": "chat deleted successfully", "chat_id": chat_id}


@chats_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="user_register", span_type="TOOL")
async def user_register(
    clerk_id: UserRef,
    email: EmailParam,
    full_name: Annotated[str, Field(description="Display name")] = "",
) -> dict:
    """Register a user, or return the existing record for *clerk_id*.

    Returns:
        Dict with id, clerk_id, email, full_name and timestamps.
    """
    try:
        user = service.register_user(get_store(), clerk_id, email, full_name)
    except Exception as exc:
        return make_tool_error(exc)
    return user.model_dump(mode="json")
