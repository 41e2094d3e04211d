"""Load ``~/.config/manimbot-mcp/.env`` underneath the process environment.

python-dotenv parses the file; this module only decides which values win.
A variable already set in the process keeps its value, unless the MCP host
passed it through blank or as its own unresolved placeholder
(``GEMINI_API_KEY=${GEMINI_API_KEY}``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_ENV_PATH = Path.home() / ".config" / "manimbot-mcp" / ".env"


def _host_left_unset(key: str, value: str | None) -> bool:
    if value is None:
        return True
    value = value.strip().strip("\"'").strip()
    if not value:
        return True
    return value in {f"${key}", f"${{{key}}}"} or value.startswith(f"${{{key}:-")


def load_env_file(path: Path | None = None) -> dict[str, str]:
    """Inject the config file's values for variables the host left unset.

    Returns:
        The variables that were injected.
    """
    path = DEFAULT_ENV_PATH if path is None else path
    if not path.is_file():
        return {}

    injected: dict[str, str] = {}
    for key, value in dotenv_values(path).items():
        if value is None or not _host_left_unset(key, os.environ.get(key)):
            continue
        os.environ[key] = value
        injected[key] = value
    if injected:
        logger.info("Loaded %d var(s) from %s: %s", len(injected), path, ", ".join(injected))
    return injected
