"""SQLite-backed users, chats and messages with WAL mode."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from .errors import UserConflictError
from .models.chat import Chat, Message, MessageRole, User

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    clerk_id TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE TABLE IF NOT EXISTS chats (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id),
    title TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_chats_user ON chats(user_id);
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    chat_id TEXT NOT NULL REFERENCES chats(id),
    role TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    video_url TEXT NOT NULL DEFAULT '',
    explanation TEXT NOT NULL DEFAULT '',
    duration INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_messages_chat ON messages(chat_id);
"""

_TITLE_SKIP_WORDS = frozenset({
    "can", "you", "help", "me", "explain", "show", "demonstrate", "visualize",
    "create", "make", "generate", "the", "a", "an",
})
_TITLE_MAX_WORDS = 5
_TITLE_MAX_CHARS = 50


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _truncate_title(text: str) -> str:
    if len(text) > _TITLE_MAX_CHARS:
        return text[: _TITLE_MAX_CHARS - 3] + "..."
    return text


def generate_title(prompt: str) -> str:
    """Derive a short chat title from the first prompt.

    Drops filler words ("can you explain the ..."), keeps the first five
    remaining words and caps the result at 50 characters.
    """
    title_words: list[str] = []
    for word in prompt.split():
        if word.lower() not in _TITLE_SKIP_WORDS:
            title_words.append(word)
        if len(title_words) >= _TITLE_MAX_WORDS:
            break
    if not title_words:
        return _truncate_title(prompt)
    return _truncate_title(" ".join(title_words))


class ChatStore:
    """Synchronous SQLite persistence for users, chats and messages.

    Deletes are soft: rows get a ``deleted_at`` stamp and disappear from
    every query.
    """

    def __init__(self, db_path: str | Path) -> None:
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        # Starlette may call handlers from a worker thread.
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.executescript(_SCHEMA)

    # ── Users ───────────────────────────────────────────────────────────

    def get_user_by_external_id(self, clerk_id: str) -> User | None:
        """Look up a user by the caller-supplied identity."""
        row = self._conn.execute(
            "SELECT * FROM users WHERE clerk_id = ? AND deleted_at IS NULL",
            (clerk_id,),
        ).fetchone()
        return _row_to_user(row) if row else None

    def create_or_get_user(self, clerk_id: str, email: str, full_name: str = "") -> User:
        """Return the user for *clerk_id*, creating it on first sight.

        Raises:
            UserConflictError: *email* already belongs to another clerk_id.
        """
        existing = self.get_user_by_external_id(clerk_id)
        if existing is not None:
            return existing
        now = _now()
        user_id = _new_id()
        try:
            self._conn.execute(
                """INSERT INTO users (id, clerk_id, email, full_name, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, clerk_id, email, full_name, now, now),
            )
            self._conn.commit()
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            logger.warning("Rejected user %s: %s", clerk_id, exc)
            raise UserConflictError("failed to create user") from exc
        logger.info("Created user %s", user_id)
        return self.get_user_by_external_id(clerk_id)  # type: ignore[return-value]

    # ── Chats ───────────────────────────────────────────────────────────

    def create_chat(self, user_id: str, title: str) -> Chat:
        now = _now()
        chat_id = _new_id()
        self._conn.execute(
            "INSERT INTO chats (id, user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (chat_id, user_id, title, now, now),
        )
        self._conn.commit()
        return Chat(
            id=chat_id,
            user_id=user_id,
            title=title,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def get_chat(self, chat_id: str, user_id: str) -> Chat | None:
        """Return the chat only if it belongs to *user_id*."""
        row = self._conn.execute(
            "SELECT * FROM chats WHERE id = ? AND user_id = ? AND deleted_at IS NULL",
            (chat_id, user_id),
        ).fetchone()
        return _row_to_chat(row) if row else None

    def list_chats(self, user_id: str) -> list[Chat]:
        """Return the user's chats, most recently active first."""
        rows = self._conn.execute(
            "SELECT * FROM chats WHERE user_id = ? AND deleted_at IS NULL "
            "ORDER BY updated_at DESC, created_at DESC",
            (user_id,),
        ).fetchall()
        return [_row_to_chat(r) for r in rows]

    def delete_chat(self, chat_id: str, user_id: str) -> bool:
        """Soft-delete a chat and its messages. Returns True if a chat was removed."""
        now = _now()
        cursor = self._conn.execute(
            "UPDATE chats SET deleted_at = ? WHERE id = ? AND user_id = ? AND deleted_at IS NULL",
            (now, chat_id, user_id),
        )
        if cursor.rowcount > 0:
            self._conn.execute(
                "UPDATE messages SET deleted_at = ? WHERE chat_id = ? AND deleted_at IS NULL",
                (now, chat_id),
            )
        self._conn.commit()
        return cursor.rowcount > 0

    # ── Messages ────────────────────────────────────────────────────────

    def add_message(
        self,
        chat_id: str,
        role: MessageRole,
        content: str,
        *,
        video_url: str = "",
        explanation: str = "",
        duration: int = 0,
    ) -> Message:
        """Append a message and bump the chat's ``updated_at``."""
        now = _now()
        message_id = _new_id()
        self._conn.execute(
            """INSERT INTO messages
               (id, chat_id, role, content, video_url, explanation, duration, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (message_id, chat_id, role, content, video_url, explanation, duration, now),
        )
        self._conn.execute("UPDATE chats SET updated_at = ? WHERE id = ?", (now, chat_id))
        self._conn.commit()
        return Message(
            id=message_id,
            chat_id=chat_id,
            role=role,
            content=content,
            video_url=video_url,
            explanation=explanation,
            duration=duration,
            created_at=datetime.fromisoformat(now),
        )

    def list_messages(self, chat_id: str) -> list[Message]:
        """Return a chat's messages in insertion order."""
        rows = self._conn.execute(
            "SELECT * FROM messages WHERE chat_id = ? AND deleted_at IS NULL "
            "ORDER BY created_at, rowid",
            (chat_id,),
        ).fetchall()
        return [_row_to_message(r) for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        clerk_id=row["clerk_id"],
        email=row["email"],
        full_name=row["full_name"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_chat(row: sqlite3.Row) -> Chat:
    return Chat(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        chat_id=row["chat_id"],
        role=row["role"],
        content=row["content"],
        video_url=row["video_url"],
        explanation=row["explanation"],
        duration=row["duration"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


_store: ChatStore | None = None


def get_store() -> ChatStore:
    """Return the process-wide ChatStore, opening it on first access."""
    global _store
    if _store is None:
        from .config import get_config

        _store = ChatStore(get_config().resolved_db_path)
    return _store


def close_store() -> None:
    """Close and forget the process-wide ChatStore."""
    global _store
    if _store is not None:
        _store.close()
        _store = None
