"""Tests for chat-level generation and history operations."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from manimbot_mcp import service
from manimbot_mcp.complexity import ComplexityTier
from manimbot_mcp.errors import ChatNotFoundError, StorageError, UnauthorizedError, WorkflowFailedError
from manimbot_mcp.models.pipeline import (
    RenderArtifact,
    WorkflowFailure,
    WorkflowResult,
    WorkflowStage,
    WorkflowStatus,
)
from manimbot_mcp.persistence import ChatStore


@pytest.fixture()
def store(tmp_path):
    s = ChatStore(tmp_path / "svc.db")
    s.create_or_get_user("user_abc", "ada@example.com")
    yield s
    s.close()


def _succeeding_workflow(seconds: int = 90):
    """Fake run_workflow that drops a video into the workspace it was given."""
    seen: dict = {}

    async def _run(prompt, *, workspace):
        seen["workspace"] = Path(workspace)
        video = Path(workspace) / "attempt-0" / "videos" / "animation" / "480p15" / "animation_1.mp4"
        video.parent.mkdir(parents=True)
        video.write_bytes(b"\x00")
        return WorkflowResult(
            status=WorkflowStatus.SUCCEEDED,
            tier=ComplexityTier.MODERATE,
            attempts=1,
            explanation="Rates of change.",
            artifact=RenderArtifact(
                relative_path="videos/animation/480p15/animation_1.mp4",
                absolute_path=str(video),
                duration_seconds=seconds,
            ),
        )

    return _run, seen


def _failed_result() -> WorkflowResult:
    return WorkflowResult(
        status=WorkflowStatus.FAILED,
        tier=ComplexityTier.COMPLEX,
        attempts=3,
        failure=WorkflowFailure(
            category="DURATION_TOO_SHORT",
            stage=WorkflowStage.VALIDATING,
            message="animation too short (42s). Animations must be at least 60 seconds",
        ),
    )


class TestGenerateAnimation:
    async def test_new_chat_persists_both_turns(self, tmp_path, store):
        run, seen = _succeeding_workflow()
        with patch("manimbot_mcp.service.run_workflow", side_effect=run):
            response = await service.generate_animation(store, "user_abc", "Can you explain derivatives")

        assert response.duration == 90
        assert response.explanation == "Rates of change."
        assert response.video_url.startswith("file://")
        assert (tmp_path / "published" / "animation_1.mp4").exists()
        assert not seen["workspace"].exists()

        detail = service.get_chat_detail(store, "user_abc", response.chat_id)
        assert detail.title == "derivatives"
        assert [m.role for m in detail.messages] == ["user", "assistant"]
        assert detail.messages[1].id == response.message_id
        assert detail.messages[0].video_url is None

    async def test_existing_chat_is_reused(self, store):
        user = store.get_user_by_external_id("user_abc")
        chat = store.create_chat(user.id, "ongoing")
        run, _ = _succeeding_workflow()
        with patch("manimbot_mcp.service.run_workflow", side_effect=run):
            response = await service.generate_animation(store, "user_abc", "again", chat.id)

        assert response.chat_id == chat.id
        assert len(store.list_chats(user.id)) == 1

    async def test_unknown_user(self, store):
        with pytest.raises(UnauthorizedError, match="user not found"):
            await service.generate_animation(store, "nobody", "x")

    async def test_missing_user_header(self, store):
        with pytest.raises(UnauthorizedError, match="unauthorized"):
            await service.generate_animation(store, None, "x")

    async def test_foreign_chat(self, store):
        with pytest.raises(ChatNotFoundError):
            await service.generate_animation(store, "user_abc", "x", "not-a-chat")

    async def test_workflow_failure_cleans_workspace(self, tmp_path, store):
        seen: dict = {}

        async def _run(prompt, *, workspace):
            seen["workspace"] = Path(workspace)
            return _failed_result()

        with patch("manimbot_mcp.service.run_workflow", side_effect=_run):
            with pytest.raises(WorkflowFailedError, match="too short"):
                await service.generate_animation(store, "user_abc", "quantum entanglement proof")

        assert not seen["workspace"].exists()
        chat = store.list_chats(store.get_user_by_external_id("user_abc").id)[0]
        assert [m.role for m in store.list_messages(chat.id)] == ["user"]

    async def test_publish_failure_propagates(self, store):
        run, seen = _succeeding_workflow()
        with (
            patch("manimbot_mcp.service.run_workflow", side_effect=run),
            patch("manimbot_mcp.service.publish_video", AsyncMock(side_effect=StorageError("denied"))),
        ):
            with pytest.raises(StorageError):
                await service.generate_animation(store, "user_abc", "x")
        assert not seen["workspace"].exists()

    async def test_publish_is_recorded_as_upload_stage(self, store):
        run, _ = _succeeding_workflow()
        with (
            patch("manimbot_mcp.service.run_workflow", side_effect=run),
            patch("manimbot_mcp.service.tracing.record_stage") as record,
        ):
            await service.generate_animation(store, "user_abc", "explain derivatives")

        assert [c.args[0] for c in record.call_args_list] == ["uploading", "succeeded"]
        assert record.call_args_list[1].kwargs == {"attempts": 1}

    async def test_failed_publish_never_reaches_succeeded(self, store):
        run, _ = _succeeding_workflow()
        with (
            patch("manimbot_mcp.service.run_workflow", side_effect=run),
            patch("manimbot_mcp.service.publish_video", AsyncMock(side_effect=StorageError("denied"))),
            patch("manimbot_mcp.service.tracing.record_stage") as record,
        ):
            with pytest.raises(StorageError):
                await service.generate_animation(store, "user_abc", "x")

        assert [c.args[0] for c in record.call_args_list] == ["uploading"]


class TestHistory:
    def test_list_and_delete(self, store):
        user = store.get_user_by_external_id("user_abc")
        chat = store.create_chat(user.id, "t")

        assert [c.id for c in service.list_chats(store, "user_abc")] == [chat.id]
        service.delete_chat(store, "user_abc", chat.id)
        assert service.list_chats(store, "user_abc") == []
        with pytest.raises(ChatNotFoundError):
            service.delete_chat(store, "user_abc", chat.id)

    def test_register_user_is_idempotent(self, store):
        first = service.register_user(store, "user_new", "new@example.com", "New")
        second = service.register_user(store, "user_new", "new@example.com")
        assert first.id == second.id
