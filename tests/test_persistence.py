"""Tests for SQLite chat persistence and title generation."""

from __future__ import annotations

import pytest

from manimbot_mcp.errors import UserConflictError
from manimbot_mcp.persistence import ChatStore, generate_title, get_store


@pytest.fixture()
def store(tmp_path):
    s = ChatStore(tmp_path / "test_chats.db")
    yield s
    s.close()


@pytest.fixture()
def user(store):
    return store.create_or_get_user("user_abc", "ada@example.com", "Ada Lovelace")


class TestUsers:
    def test_create_then_get_returns_same_user(self, store, user):
        again = store.create_or_get_user("user_abc", "other@example.com")
        assert again.id == user.id
        assert again.email == "ada@example.com"

    def test_lookup_by_external_id(self, store, user):
        assert store.get_user_by_external_id("user_abc").id == user.id
        assert store.get_user_by_external_id("missing") is None

    def test_email_taken_by_other_identity(self, store, user):
        with pytest.raises(UserConflictError, match="failed to create user"):
            store.create_or_get_user("user_other", "ada@example.com")
        assert store.get_user_by_external_id("user_other") is None
        assert store.create_or_get_user("user_other", "grace@example.com").email == "grace@example.com"


class TestChats:
    def test_get_chat_is_scoped_to_owner(self, store, user):
        chat = store.create_chat(user.id, "Derivatives")
        other = store.create_or_get_user("user_xyz", "bob@example.com")
        assert store.get_chat(chat.id, user.id).title == "Derivatives"
        assert store.get_chat(chat.id, other.id) is None

    def test_list_orders_by_recent_activity(self, store, user):
        first = store.create_chat(user.id, "first")
        second = store.create_chat(user.id, "second")
        store.add_message(first.id, "user", "bump")
        assert [c.id for c in store.list_chats(user.id)] == [first.id, second.id]

    def test_soft_delete(self, store, user):
        chat = store.create_chat(user.id, "gone")
        store.add_message(chat.id, "user", "hello")

        assert store.delete_chat(chat.id, user.id) is True
        assert store.get_chat(chat.id, user.id) is None
        assert store.list_chats(user.id) == []
        assert store.list_messages(chat.id) == []
        assert store.delete_chat(chat.id, user.id) is False

    def test_delete_other_users_chat_is_refused(self, store, user):
        chat = store.create_chat(user.id, "mine")
        other = store.create_or_get_user("user_xyz", "bob@example.com")
        assert store.delete_chat(chat.id, other.id) is False
        assert store.get_chat(chat.id, user.id) is not None


class TestMessages:
    def test_messages_in_insertion_order(self, store, user):
        chat = store.create_chat(user.id, "t")
        store.add_message(chat.id, "user", "explain derivatives")
        store.add_message(
            chat.id,
            "assistant",
            "explain derivatives",
            video_url="https://b.s3.ap-south-1.amazonaws.com/a.mp4",
            explanation="Rates of change.",
            duration=90,
        )
        messages = store.list_messages(chat.id)
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[1].duration == 90
        assert messages[1].video_url.endswith("a.mp4")
        assert messages[0].video_url == ""

    def test_add_message_touches_chat(self, store, user):
        chat = store.create_chat(user.id, "t")
        msg = store.add_message(chat.id, "user", "hi")
        assert store.get_chat(chat.id, user.id).updated_at == msg.created_at


class TestStoreSingleton:
    def test_opens_configured_path(self, tmp_path):
        store = get_store()
        assert get_store() is store
        assert (tmp_path / "chats.db").exists()


class TestGenerateTitle:
    @pytest.mark.parametrize(("prompt", "title"), [
        ("Can you explain the Pythagorean theorem", "Pythagorean theorem"),
        ("visualize a fourier series of a square wave", "fourier series of square wave"),
        ("show me how bubble sort works on a list of numbers", "how bubble sort works on"),
    ])
    def test_drops_filler_keeps_five_words(self, prompt, title):
        assert generate_title(prompt) == title

    def test_only_filler_falls_back_to_prompt(self):
        assert generate_title("can you help me") == "can you help me"

    def test_long_title_truncated(self):
        title = generate_title("Supercalifragilisticexpialidocious antidisestablishmentarianism floccinaucinihilipilification")
        assert len(title) == 50
        assert title.endswith("...")

    def test_long_filler_prompt_truncated(self):
        prompt = " ".join(["the"] * 30)
        title = generate_title(prompt)
        assert len(title) == 50
        assert title.endswith("...")
