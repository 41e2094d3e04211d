"""Tests for scene extraction from model output."""

from __future__ import annotations

from manimbot_mcp.extraction import extract_code


class TestExtractCode:
    def test_python_tagged_block(self, scene_code, fenced_reply):
        assert extract_code(fenced_reply(scene_code)) == scene_code

    def test_py_tag_accepted(self, scene_code, fenced_reply):
        assert extract_code(fenced_reply(scene_code, tag="py")) == scene_code

    def test_untagged_block(self, scene_code, fenced_reply):
        assert extract_code(fenced_reply(scene_code, tag="")) == scene_code

    def test_skips_tagged_block_without_scene(self, scene_code):
        raw = (
            "First install it:\n```python\npip install manim\n```\n"
            f"Then run:\n```\n{scene_code}\n```"
        )
        assert extract_code(raw) == scene_code

    def test_tagged_block_preferred_over_untagged(self, scene_code):
        other = scene_code.replace("hello", "other")
        raw = f"```\n{other}\n```\n\n```python\n{scene_code}\n```"
        assert extract_code(raw) == scene_code

    def test_block_without_scene_marker_is_rejected(self):
        raw = "```python\nfrom manim import *\n\nclass Intro(Scene):\n    pass\n```"
        assert extract_code(raw) == ""

    def test_raw_unfenced_code(self, scene_code):
        assert extract_code(f"\n\n{scene_code}\n  ") == scene_code

    def test_raw_text_requires_import(self):
        assert extract_code("class Scene(Scene):\n    pass") == ""

    def test_idempotent(self, scene_code, fenced_reply):
        once = extract_code(fenced_reply(scene_code))
        assert extract_code(once) == once

    def test_prose_returns_empty(self):
        assert extract_code("I cannot help with that, but here is some theory.") == ""

    def test_empty_input(self):
        assert extract_code("") == ""
