"""Shared test fixtures for manimbot-mcp."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from manimbot_mcp.runner import ProcessResult


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


@pytest.fixture(autouse=True, scope="session")
def _unwrap_fastmcp_tools():
    """Patch tool modules so FunctionTool objects become directly callable.

    Tests call tools through the module (``animation_mod.animation_generate``)
    so they see the unwrapped function regardless of FastMCP version.
    """
    import importlib
    import pkgutil

    import manimbot_mcp.tools as tools_pkg

    modules = [
        importlib.import_module(info.name)
        for info in pkgutil.walk_packages(tools_pkg.__path__, tools_pkg.__name__ + ".")
    ]
    for mod in modules:
        for name in list(vars(mod)):
            obj = getattr(mod, name, None)
            if obj is not None and hasattr(obj, "fn") and not callable(obj):
                setattr(mod, name, unwrap_tool(obj))


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("GEMINI_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_env_file(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/manimbot-mcp/.env."""
    monkeypatch.setattr(
        "manimbot_mcp.envfile.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _isolate_storage(tmp_path, monkeypatch):
    """Point the work dir, database and publish dir at tmp_path; no S3 bucket."""
    monkeypatch.setenv("MANIMBOT_WORK_DIR", str(tmp_path / "work"))
    monkeypatch.setenv("MANIMBOT_DB", str(tmp_path / "chats.db"))
    monkeypatch.setenv("MANIMBOT_PUBLISH_DIR", str(tmp_path / "published"))
    monkeypatch.delenv("MANIMBOT_S3_BUCKET", raising=False)


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config and store singletons between tests."""
    import manimbot_mcp.config as cfg_mod
    import manimbot_mcp.persistence as store_mod

    cfg_mod._config = None
    store_mod.close_store()
    yield
    store_mod.close_store()
    cfg_mod._config = None


@pytest.fixture()
def mock_gemini_client():
    """Patch GeminiClient.get() and .generate() for unit tests."""
    with (
        patch("manimbot_mcp.client.GeminiClient.get") as mock_get,
        patch(
            "manimbot_mcp.client.GeminiClient.generate", new_callable=AsyncMock
        ) as mock_gen,
    ):
        client = MagicMock()
        mock_get.return_value = client
        yield {
            "get": mock_get,
            "generate": mock_gen,
            "client": client,
        }


@pytest.fixture()
def process_result():
    """Factory for ProcessResult values returned by a patched run_process."""

    def _make(stdout: str = "", stderr: str = "", returncode: int = 0) -> ProcessResult:
        return ProcessResult(
            stdout=stdout,
            stderr=stderr,
            returncode=returncode,
            duration_seconds=0.1,
            command=["mock"],
        )

    return _make


_SCENE_CODE = """\
from manim import *

class Scene(Scene):
    def construct(self):
        self.play(Write(Text("hello")), run_time=2)
        self.wait(60)"""


@pytest.fixture()
def scene_code() -> str:
    return _SCENE_CODE


@pytest.fixture()
def fenced_reply():
    """Wrap code the way Gemini usually answers."""

    def _wrap(code: str = _SCENE_CODE, tag: str = "python") -> str:
        return f"Here is your animation:\n\n```{tag}\n{code}\n```\n\nEnjoy!"

    return _wrap
