"""Chat history models: stored rows and API response shapes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

MessageRole = Literal["user", "assistant"]


class User(BaseModel):
    id: str
    clerk_id: str
    email: str
    full_name: str = ""
    created_at: datetime
    updated_at: datetime


class Chat(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    """A single turn; assistant turns carry the published video."""

    id: str
    chat_id: str
    role: MessageRole
    content: str
    video_url: str = ""
    explanation: str = ""
    duration: int = 0
    created_at: datetime


# ── Request bodies ──────────────────────────────────────────────────────────


class GenerateRequest(BaseModel):
    prompt: str = Field(min_length=1)
    chat_id: str | None = None


class CreateUserRequest(BaseModel):
    clerk_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    full_name: str = ""


# ── Responses ───────────────────────────────────────────────────────────────


class ChatResponse(BaseModel):
    """Result of a successful generation, as returned to the caller."""

    chat_id: str
    message_id: str
    video_url: str
    explanation: str
    duration: int
    created_at: datetime


class ChatSummary(BaseModel):
    id: str
    title: str
    created_at: datetime
    updated_at: datetime


class MessageView(BaseModel):
    id: str
    role: MessageRole
    content: str
    video_url: str | None = None
    explanation: str | None = None
    duration: int | None = None
    created_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> MessageView:
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            video_url=message.video_url or None,
            explanation=message.explanation or None,
            duration=message.duration or None,
            created_at=message.created_at,
        )


class ChatDetail(BaseModel):
    id: str
    title: str
    messages: list[MessageView] = Field(default_factory=list)
    created_at: datetime
