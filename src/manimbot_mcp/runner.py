"""Subprocess execution and the manim render step."""

from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from .config import get_config
from .errors import ArtifactNotFoundError, ExecutableNotFoundError, ProbeError, RenderError
from .extraction import SCENE_NAME
from .models.pipeline import RenderArtifact

logger = logging.getLogger(__name__)

SIGTERM_GRACE_SECONDS = 5
SCRIPT_NAME = "animation.py"
# Resolution tiers manim writes to, probed in this order.
QUALITY_DIRS: tuple[str, ...] = ("480p15", "720p30", "1080p60")
_OUTPUT_TAIL_CHARS = 4000


@dataclass(frozen=True)
class ProcessResult:
    """Immutable result of a subprocess execution."""

    stdout: str
    stderr: str
    returncode: int
    duration_seconds: float
    command: list[str]


async def _stop(proc: asyncio.subprocess.Process) -> None:
    """SIGTERM, wait up to the grace period, then SIGKILL."""
    try:
        proc.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(proc.communicate(), timeout=SIGTERM_GRACE_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("Process did not exit after SIGTERM, sending SIGKILL")
        try:
            proc.kill()
        except ProcessLookupError:
            return
        await proc.communicate()


async def run_process(
    *cmd: str,
    timeout: float,
    cwd: str | None = None,
    merge_stderr: bool = False,
) -> ProcessResult:
    """Run *cmd* without a shell and collect its output.

    The child is stopped (SIGTERM, then SIGKILL after 5s) when the timeout
    expires or the awaiting task is cancelled, so no renderer outlives the
    request that started it.

    Args:
        *cmd: Program and arguments.
        timeout: Max seconds to wait.
        cwd: Working directory for the child.
        merge_stderr: Fold stderr into stdout (combined output).

    Returns:
        ProcessResult with stdout, stderr, returncode, duration.

    Raises:
        FileNotFoundError: When the executable does not exist.
        asyncio.TimeoutError: When the process exceeds *timeout*.
    """
    command = list(cmd)
    logger.debug("Running: %s (timeout=%ss)", " ".join(command), timeout)
    start = time.monotonic()

    proc = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT if merge_stderr else asyncio.subprocess.PIPE,
        cwd=cwd,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Process timed out after %ss, sending SIGTERM: %s", timeout, command[0])
        await _stop(proc)
        raise
    except asyncio.CancelledError:
        logger.warning("Cancelled while waiting on %s, stopping child", command[0])
        await _stop(proc)
        raise

    elapsed = time.monotonic() - start
    return ProcessResult(
        stdout=(stdout_bytes or b"").decode("utf-8", errors="replace"),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace"),
        returncode=proc.returncode or 0,
        duration_seconds=round(elapsed, 2),
        command=command,
    )


def locate_artifact(media_root: Path, script_stem: str, output_file: str) -> Path:
    """Return the first quality-tier path under *media_root* holding *output_file*.

    Raises:
        ArtifactNotFoundError: When no tier directory contains the file.
    """
    videos_dir = media_root / "videos" / script_stem
    for quality in QUALITY_DIRS:
        candidate = videos_dir / quality / output_file
        if candidate.is_file():
            return candidate
    raise ArtifactNotFoundError(f"could not find generated video file {output_file} under {videos_dir}")


async def run_manim(code: str, media_root: Path) -> Path:
    """Render *code* with the manim CLI into *media_root* and return the video path.

    The source file lives in its own temporary directory that is removed on
    every exit path.

    Raises:
        RenderError: manim exited non-zero or timed out.
        ArtifactNotFoundError: manim succeeded but produced no discoverable file.
        ExecutableNotFoundError: The manim executable is missing.
    """
    cfg = get_config()
    media_root = Path(media_root)
    media_root.mkdir(parents=True, exist_ok=True)
    output_file = f"animation_{int(time.time())}.mp4"

    with tempfile.TemporaryDirectory(prefix="manim-") as tmp:
        source = Path(tmp) / SCRIPT_NAME
        source.write_text(code, encoding="utf-8")
        cmd = [
            cfg.manim_bin,
            cfg.quality_flag,
            "--media_dir",
            str(media_root),
            str(source),
            SCENE_NAME,
            "-o",
            output_file,
        ]
        try:
            result = await run_process(*cmd, timeout=cfg.render_timeout, merge_stderr=True)
        except asyncio.TimeoutError as exc:
            raise RenderError(cmd, None, timed_out=True) from exc
        except FileNotFoundError as exc:
            raise ExecutableNotFoundError(cfg.manim_bin, "MANIMBOT_MANIM_BIN") from exc

    if result.returncode != 0:
        output = result.stdout[-_OUTPUT_TAIL_CHARS:]
        logger.error("manim failed (exit %d)\noutput: %s", result.returncode, output)
        raise RenderError(cmd, result.returncode, output)

    logger.info("manim rendered %s in %.1fs", output_file, result.duration_seconds)
    return locate_artifact(media_root, source.stem, output_file)


async def collect_artifact(video_path: Path, media_root: Path) -> RenderArtifact:
    """Describe a rendered video, measuring its duration.

    A failed duration probe is not fatal: the configured floor is used.
    """
    from .probe import probe_duration

    cfg = get_config()
    media_root = Path(media_root)
    video_path = Path(video_path)

    try:
        duration = await probe_duration(video_path)
    except ProbeError as exc:
        logger.warning(
            "Could not get video duration (%s), assuming %ds", exc, cfg.probe_fallback_seconds,
        )
        duration = cfg.probe_fallback_seconds

    return RenderArtifact(
        relative_path=video_path.relative_to(media_root).as_posix(),
        absolute_path=str(video_path),
        duration_seconds=duration,
    )
