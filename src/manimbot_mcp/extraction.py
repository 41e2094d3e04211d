"""Pull a single runnable Manim scene out of free-form model output."""

from __future__ import annotations

import re

# manim is invoked with this class name, so the generated unit must define it.
SCENE_NAME = "Scene"
SCENE_MARKER = f"class {SCENE_NAME}("
IMPORT_MARKER = "from manim import"

_TAGGED_FENCE = re.compile(r"```(?:python|py)[ \t]*\r?\n(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[\w+-]*[ \t]*\r?\n(.*?)```", re.DOTALL)


def _first_block_with_marker(pattern: re.Pattern[str], text: str) -> str | None:
    for match in pattern.finditer(text):
        block = match.group(1)
        if SCENE_MARKER in block:
            return block.strip()
    return None


def extract_code(raw_text: str) -> str:
    """Extract the scene source from *raw_text*.

    Tries, in order: a ``python``-tagged fenced block containing the scene
    class, any fenced block containing it, then the whole unfenced text when
    it carries both the manim import and the scene class.

    Args:
        raw_text: Raw text returned by the generation model.

    Returns:
        Trimmed source code, or ``""`` when nothing runnable was found.
    """
    if not raw_text:
        return ""

    code = _first_block_with_marker(_TAGGED_FENCE, raw_text)
    if code is not None:
        return code

    code = _first_block_with_marker(_ANY_FENCE, raw_text)
    if code is not None:
        return code

    if "```" not in raw_text and IMPORT_MARKER in raw_text and SCENE_MARKER in raw_text:
        return raw_text.strip()

    return ""
