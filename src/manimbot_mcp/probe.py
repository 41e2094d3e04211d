"""Measure video duration with ffprobe."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .config import get_config
from .errors import DurationParseError, MediaNotFoundError, ProbeToolError
from .runner import run_process

logger = logging.getLogger(__name__)


def round_duration(seconds: float) -> int:
    """Round to the nearest whole second, halves up (59.5 -> 60)."""
    return int(seconds + 0.5)


async def probe_duration(path: Path | str) -> int:
    """Return the duration of the media file at *path* in whole seconds.

    Raises:
        MediaNotFoundError: The file does not exist.
        ProbeToolError: ffprobe is missing, failed, or timed out.
        DurationParseError: ffprobe printed something other than a number.
    """
    cfg = get_config()
    video = Path(path)
    if not video.is_file():
        raise MediaNotFoundError(f"video file does not exist: {video}")

    cmd = [
        cfg.ffprobe_bin,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(video),
    ]
    try:
        result = await run_process(*cmd, timeout=cfg.probe_timeout)
    except FileNotFoundError as exc:
        raise ProbeToolError(f"ffprobe executable not found: {cfg.ffprobe_bin}") from exc
    except asyncio.TimeoutError as exc:
        raise ProbeToolError(f"ffprobe timed out after {cfg.probe_timeout}s") from exc

    if result.returncode != 0:
        logger.error("ffprobe failed (exit %d): %s", result.returncode, result.stderr[:500])
        raise ProbeToolError(f"ffprobe execution failed with exit code {result.returncode}")

    raw = result.stdout.strip()
    try:
        seconds = float(raw)
    except ValueError as exc:
        raise DurationParseError(f"could not parse duration: {raw!r}") from exc
    return round_duration(seconds)
