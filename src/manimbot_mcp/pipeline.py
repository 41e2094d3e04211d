"""Bounded-retry workflow: prompt → Gemini → extract → manim → ffprobe → validate.

Only two failure modes earn a guided retry: numpy broadcast errors from
2D coordinates, and videos shorter than the minimum duration. Everything
else ends the run. Each attempt renders into its own media root under the
caller's workspace; failed attempts' roots are purged before the next one.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from . import tracing
from .complexity import ComplexityTier, assess_complexity
from .config import get_config
from .errors import (
    ArtifactNotFoundError,
    ConfigurationError,
    DurationShortfallError,
    ExecutableNotFoundError,
    ExtractionError,
    ManimbotError,
    RenderError,
    RenderFailureKind,
    categorize_error,
    classify_render_failure,
)
from .extraction import extract_code
from .generation import explain_concept, generate_animation_code
from .models.pipeline import (
    RenderArtifact,
    WorkflowAttempt,
    WorkflowFailure,
    WorkflowResult,
    WorkflowStage,
    WorkflowStatus,
)
from .runner import collect_artifact, run_manim

logger = logging.getLogger(__name__)

EXPLANATION_PLACEHOLDER = "Explanation unavailable"

# A failure in these stages may leave partial media under the attempt root.
_MEDIA_STAGES = frozenset({WorkflowStage.RENDERING, WorkflowStage.PROBING, WorkflowStage.VALIDATING})


def retry_context(exc: Exception) -> str | None:
    """Return the failure text to feed back into a guided retry, or None if terminal."""
    if isinstance(exc, DurationShortfallError):
        return str(exc)
    if (
        isinstance(exc, RenderError)
        and not exc.timed_out
        and classify_render_failure(exc.output) is RenderFailureKind.COORDINATE_SHAPE
    ):
        return f"{exc}\nOutput: {exc.output}"
    return None


def next_attempt(
    attempt: WorkflowAttempt,
    failure_text: str | None,
    max_retries: int,
) -> WorkflowAttempt | None:
    """Transition to the next attempt, or None when the run must stop.

    Stops when the failure is not retryable (*failure_text* is None) or the
    retry budget is spent.
    """
    if failure_text is None or attempt.index >= max_retries:
        return None
    return WorkflowAttempt(index=attempt.index + 1, last_error=failure_text)


def validate_duration(artifact: RenderArtifact, minimum_seconds: int) -> None:
    """Raise DurationShortfallError when *artifact* is shorter than *minimum_seconds*."""
    if artifact.duration_seconds < minimum_seconds:
        raise DurationShortfallError(artifact.duration_seconds, minimum_seconds)


def failure_message(exc: Exception) -> str:
    """User-facing summary for a terminal failure; never includes raw output."""
    if isinstance(exc, DurationShortfallError):
        return (
            f"animation too short ({exc.duration_seconds}s). "
            f"Animations must be at least {exc.minimum_seconds} seconds"
        )
    if isinstance(exc, ExecutableNotFoundError):
        return "animation renderer is not installed"
    if isinstance(exc, ConfigurationError):
        return "animation service is not configured"
    if isinstance(exc, ExtractionError):
        return "failed to extract animation code"
    if isinstance(exc, RenderError):
        return f"animation generation failed: {exc}"
    if isinstance(exc, ArtifactNotFoundError):
        return "animation generation failed: could not find generated video file"
    return "failed to generate animation code"


def _purge(media_root: Path) -> None:
    shutil.rmtree(media_root, ignore_errors=True)


async def _explain(prompt: str) -> str:
    try:
        return await explain_concept(prompt)
    except ManimbotError as exc:
        logger.warning("error generating explanation: %s", exc)
        return EXPLANATION_PLACEHOLDER


def _enter(trail: list[WorkflowStage], stage: WorkflowStage, **attributes: object) -> WorkflowStage:
    trail.append(stage)
    tracing.record_stage(stage.value, **attributes)
    return stage


def _failed(
    exc: Exception,
    stage: WorkflowStage,
    tier: ComplexityTier,
    attempts: int,
    explanation: str,
    trail: list[WorkflowStage],
) -> WorkflowResult:
    category, _ = categorize_error(exc)
    logger.error("Workflow failed during %s after %d attempt(s): %s", stage.value, attempts, exc)
    _enter(trail, WorkflowStage.FAILED, category=category.value)
    return WorkflowResult(
        status=WorkflowStatus.FAILED,
        tier=tier,
        attempts=attempts,
        explanation=explanation,
        failure=WorkflowFailure(category=category.value, stage=stage, message=failure_message(exc)),
        stages=trail,
    )


@tracing.trace(name="run_workflow", span_type="CHAIN")
async def run_workflow(
    prompt: str,
    *,
    workspace: Path,
    max_retries: int | None = None,
    min_duration: int | None = None,
) -> WorkflowResult:
    """Turn *prompt* into a validated video under *workspace*.

    The complexity tier is assessed once. The explanation is requested once,
    on the first attempt, and carried unchanged through any retries.

    Args:
        prompt: The user's topic.
        workspace: Per-request directory; attempt ``n`` renders into
            ``workspace/attempt-n``. The caller owns its cleanup.
        max_retries: Retry budget (defaults to config, 2 → up to 3 attempts).
        min_duration: Minimum accepted duration in seconds (defaults to config).

    Returns:
        A succeeded WorkflowResult carrying the artifact, or a failed one
        carrying a classified WorkflowFailure. ``stages`` lists every stage
        entered, in order; a validated run stops at VALIDATING and the
        caller continues with UPLOADING.
    """
    cfg = get_config()
    max_retries = cfg.max_retries if max_retries is None else max_retries
    min_duration = cfg.min_duration_seconds if min_duration is None else min_duration
    workspace = Path(workspace)
    trail: list[WorkflowStage] = []

    _enter(trail, WorkflowStage.ASSESSING)
    tier = assess_complexity(prompt)
    logger.info("Assessed prompt complexity: %s", tier.value)

    explanation = ""
    calls = 0
    attempt = WorkflowAttempt()
    while True:
        if attempt.index > 0:
            logger.warning("Retry attempt %d/%d with error context", attempt.index, max_retries)

        media_root = workspace / f"attempt-{attempt.index}"
        request = attempt.request(prompt)
        stage = _enter(trail, WorkflowStage.GENERATING, attempt=attempt.index, tier=tier.value)
        started = time.monotonic()
        try:
            calls += 1
            raw = await generate_animation_code(request.prompt, tier, request.prior_error_context)
            logger.info("Generated manim code in %.1fs", time.monotonic() - started)
            if attempt.index == 0:
                explanation = await _explain(prompt)

            stage = _enter(trail, WorkflowStage.EXTRACTING, attempt=attempt.index)
            code = extract_code(raw)
            if not code:
                raise ExtractionError("could not extract code from response")

            stage = _enter(trail, WorkflowStage.RENDERING, attempt=attempt.index)
            started = time.monotonic()
            video_path = await run_manim(code, media_root)

            stage = _enter(trail, WorkflowStage.PROBING, attempt=attempt.index)
            artifact = await collect_artifact(video_path, media_root)

            stage = _enter(
                trail, WorkflowStage.VALIDATING,
                attempt=attempt.index, duration_seconds=artifact.duration_seconds,
            )
            validate_duration(artifact, min_duration)
        except ManimbotError as exc:
            if stage in _MEDIA_STAGES:
                _purge(media_root)
            following = next_attempt(attempt, retry_context(exc), max_retries)
            if following is None:
                return _failed(exc, stage, tier, calls, explanation, trail)
            logger.warning("Attempt %d failed during %s: %s", attempt.index, stage.value, exc)
            attempt = following
            continue

        logger.info(
            "Rendered and measured %ds video in %.1fs", artifact.duration_seconds, time.monotonic() - started,
        )
        return WorkflowResult(
            status=WorkflowStatus.SUCCEEDED,
            tier=tier,
            attempts=calls,
            explanation=explanation,
            artifact=artifact,
            stages=trail,
        )
