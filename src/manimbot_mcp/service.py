"""Chat-level operations shared by the MCP tools and the HTTP routes.

``generate_animation`` is the one place a workflow result turns into a
published video and a persisted assistant message.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time

from . import tracing
from .config import get_config
from .errors import ChatNotFoundError, UnauthorizedError, WorkflowFailedError
from .models.chat import ChatDetail, ChatResponse, ChatSummary, MessageView, User
from .models.pipeline import WorkflowStage
from .persistence import ChatStore, generate_title
from .pipeline import run_workflow
from .storage import publish_video

logger = logging.getLogger(__name__)


def resolve_user(store: ChatStore, user_ref: str | None) -> User:
    """Return the registered user behind *user_ref*.

    Raises:
        UnauthorizedError: *user_ref* is empty or unknown.
    """
    if not user_ref:
        raise UnauthorizedError("unauthorized")
    user = store.get_user_by_external_id(user_ref)
    if user is None:
        raise UnauthorizedError("user not found")
    return user


async def generate_animation(
    store: ChatStore,
    user_ref: str | None,
    prompt: str,
    chat_id: str | None = None,
) -> ChatResponse:
    """Run the workflow for *prompt* inside a chat and persist both turns.

    A new chat titled from the prompt is opened when *chat_id* is None.
    The per-request workspace is removed once the video is published or
    the run fails.

    Raises:
        UnauthorizedError: Unknown caller.
        ChatNotFoundError: *chat_id* is not one of the caller's chats.
        WorkflowFailedError: The workflow ended in a terminal failure.
        StorageError: Publishing the video failed.
    """
    user = resolve_user(store, user_ref)
    if chat_id:
        chat = store.get_chat(chat_id, user.id)
        if chat is None:
            raise ChatNotFoundError("chat not found")
    else:
        chat = store.create_chat(user.id, generate_title(prompt))

    store.add_message(chat.id, "user", prompt)

    cfg = get_config()
    work_root = cfg.resolved_work_dir
    work_root.mkdir(parents=True, exist_ok=True)
    workspace = tempfile.mkdtemp(prefix="manimbot-", dir=work_root)
    try:
        result = await run_workflow(prompt, workspace=workspace)
        if not result.succeeded or result.artifact is None:
            raise WorkflowFailedError(result)
        tracing.record_stage(WorkflowStage.UPLOADING.value)
        started = time.monotonic()
        video_url = await publish_video(result.artifact.absolute_path)
        logger.info("Published video in %.1fs", time.monotonic() - started)
        tracing.record_stage(WorkflowStage.SUCCEEDED.value, attempts=result.attempts)
    finally:
        shutil.rmtree(workspace, ignore_errors=True)

    message = store.add_message(
        chat.id,
        "assistant",
        prompt,
        video_url=video_url,
        explanation=result.explanation,
        duration=result.artifact.duration_seconds,
    )
    return ChatResponse(
        chat_id=chat.id,
        message_id=message.id,
        video_url=video_url,
        explanation=result.explanation,
        duration=result.artifact.duration_seconds,
        created_at=message.created_at,
    )


def list_chats(store: ChatStore, user_ref: str | None) -> list[ChatSummary]:
    user = resolve_user(store, user_ref)
    return [
        ChatSummary(id=c.id, title=c.title, created_at=c.created_at, updated_at=c.updated_at)
        for c in store.list_chats(user.id)
    ]


def get_chat_detail(store: ChatStore, user_ref: str | None, chat_id: str) -> ChatDetail:
    """Return a chat with its messages.

    Raises:
        ChatNotFoundError: The chat is missing or owned by someone else.
    """
    user = resolve_user(store, user_ref)
    chat = store.get_chat(chat_id, user.id)
    if chat is None:
        raise ChatNotFoundError("chat not found")
    return ChatDetail(
        id=chat.id,
        title=chat.title,
        messages=[MessageView.from_message(m) for m in store.list_messages(chat.id)],
        created_at=chat.created_at,
    )


def delete_chat(store: ChatStore, user_ref: str | None, chat_id: str) -> None:
    user = resolve_user(store, user_ref)
    if not store.delete_chat(chat_id, user.id):
        raise ChatNotFoundError("chat not found")
    logger.info("Deleted chat %s", chat_id)


def register_user(store: ChatStore, clerk_id: str, email: str, full_name: str = "") -> User:
    """Create the user on first registration, otherwise return the existing one."""
    return store.create_or_get_user(clerk_id, email, full_name)
