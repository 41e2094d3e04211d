"""Structured error handling: exception taxonomy, classification, and tool error model."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from .models.pipeline import WorkflowResult


class ManimbotError(Exception):
    """Base class for every error raised by the generation pipeline."""


class ConfigurationError(ManimbotError):
    """A required setting (API key, bucket, binary) is missing."""


class ExecutableNotFoundError(ConfigurationError):
    """manim or ffprobe is not installed where the config points."""

    def __init__(self, program: str, setting: str) -> None:
        self.program = program
        self.setting = setting
        super().__init__(f"executable not found: {program}")


class ProviderError(ManimbotError):
    """The Gemini call itself failed.

    ``status_code`` is the HTTP status Gemini answered with, when it answered.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class EmptyResponseError(ProviderError):
    """Gemini answered without a usable text part."""


class ExtractionError(ManimbotError):
    """No runnable scene could be found in the model output."""


class RenderError(ManimbotError):
    """Raised when the manim CLI exits non-zero or times out.

    ``output`` keeps the combined stdout/stderr for classification and
    guided retries; ``str(exc)`` stays a short summary.
    """

    def __init__(
        self,
        command: list[str],
        returncode: int | None,
        output: str = "",
        *,
        timed_out: bool = False,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        self.timed_out = timed_out
        if timed_out:
            summary = f"manim execution timed out: {' '.join(command)!r}"
        else:
            summary = f"manim execution failed with exit code {returncode}"
        super().__init__(summary)


class ArtifactNotFoundError(ManimbotError):
    """manim succeeded but no quality-tier directory holds the output file."""


class ProbeError(ManimbotError):
    """Duration measurement failed."""


class MediaNotFoundError(ProbeError):
    """The file handed to the prober does not exist."""


class ProbeToolError(ProbeError):
    """ffprobe exited non-zero, timed out, or is not installed."""


class DurationParseError(ProbeError):
    """ffprobe output was not a floating-point number."""


class DurationShortfallError(ManimbotError):
    """The rendered video is shorter than the minimum duration."""

    def __init__(self, duration_seconds: int, minimum_seconds: int) -> None:
        self.duration_seconds = duration_seconds
        self.minimum_seconds = minimum_seconds
        super().__init__(
            f"Video duration was only {duration_seconds} seconds, "
            f"need at least {minimum_seconds} seconds"
        )


class StorageError(ManimbotError):
    """Publishing the rendered video failed."""


class UnauthorizedError(ManimbotError):
    """Caller identity is missing or unknown."""


class ChatNotFoundError(ManimbotError):
    """Chat does not exist or belongs to another user."""


class UserConflictError(ManimbotError):
    """The email is already registered under a different external ID."""


class WorkflowFailedError(ManimbotError):
    """The generation workflow ended in a terminal failure."""

    def __init__(self, result: WorkflowResult) -> None:
        self.result = result
        message = result.failure.message if result.failure else "animation generation failed"
        super().__init__(message)


class RenderFailureKind(str, Enum):
    """Tagged classification of a renderer failure."""

    COORDINATE_SHAPE = "COORDINATE_SHAPE"
    OTHER = "OTHER"


# numpy broadcast failures caused by 2D points passed where manim wants 3D
_COORDINATE_SIGNATURES: tuple[str, ...] = (
    "broadcast together with shapes",
    "(32,3)",
    "(2,)",
    "operands could not be broadcast",
)


def classify_render_failure(message: str) -> RenderFailureKind:
    """Classify renderer output as a coordinate-shape error or anything else."""
    if any(sig in message for sig in _COORDINATE_SIGNATURES):
        return RenderFailureKind.COORDINATE_SHAPE
    return RenderFailureKind.OTHER


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    CONFIG_MISSING = "CONFIG_MISSING"
    EXECUTABLE_MISSING = "EXECUTABLE_MISSING"
    PROVIDER_FAILED = "PROVIDER_FAILED"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    CODE_EXTRACTION_FAILED = "CODE_EXTRACTION_FAILED"
    RENDER_COORDINATE_ERROR = "RENDER_COORDINATE_ERROR"
    RENDER_FAILED = "RENDER_FAILED"
    RENDER_TIMEOUT = "RENDER_TIMEOUT"
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
    PROBE_FAILED = "PROBE_FAILED"
    DURATION_TOO_SHORT = "DURATION_TOO_SHORT"
    STORAGE_FAILED = "STORAGE_FAILED"
    UNAUTHORIZED = "UNAUTHORIZED"
    CHAT_NOT_FOUND = "CHAT_NOT_FOUND"
    USER_CONFLICT = "USER_CONFLICT"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    UNKNOWN = "UNKNOWN"


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, WorkflowFailedError) and error.result.failure is not None:
        return (
            ErrorCategory(error.result.failure.category),
            f"Generation stopped during {error.result.failure.stage.value} "
            f"after {error.result.attempts} attempt(s)",
        )
    if isinstance(error, ExecutableNotFoundError):
        return (
            ErrorCategory.EXECUTABLE_MISSING,
            f"{error.program} is not installed: install it or set {error.setting}",
        )
    if isinstance(error, ConfigurationError):
        return (
            ErrorCategory.CONFIG_MISSING,
            "Missing configuration: set GEMINI_API_KEY in ~/.config/manimbot-mcp/.env",
        )
    if isinstance(error, EmptyResponseError):
        return (
            ErrorCategory.EMPTY_RESPONSE,
            "Gemini returned no content: try rephrasing the prompt",
        )
    if isinstance(error, ExtractionError):
        return (
            ErrorCategory.CODE_EXTRACTION_FAILED,
            "Model output contained no runnable Scene class",
        )
    if isinstance(error, RenderError):
        if error.timed_out:
            return (
                ErrorCategory.RENDER_TIMEOUT,
                "Render timed out: raise MANIMBOT_RENDER_TIMEOUT or simplify the prompt",
            )
        if classify_render_failure(error.output) is RenderFailureKind.COORDINATE_SHAPE:
            return (
                ErrorCategory.RENDER_COORDINATE_ERROR,
                "Generated code mixed 2D and 3D coordinates",
            )
        return (
            ErrorCategory.RENDER_FAILED,
            "manim could not render the generated code: check server logs",
        )
    if isinstance(error, ArtifactNotFoundError):
        return (
            ErrorCategory.ARTIFACT_NOT_FOUND,
            "Render finished but the video file was not found under the media root",
        )
    if isinstance(error, ProbeError):
        return (
            ErrorCategory.PROBE_FAILED,
            "Could not measure video duration: is ffprobe installed?",
        )
    if isinstance(error, DurationShortfallError):
        return (
            ErrorCategory.DURATION_TOO_SHORT,
            f"Animations must be at least {error.minimum_seconds} seconds",
        )
    if isinstance(error, StorageError):
        return (
            ErrorCategory.STORAGE_FAILED,
            "Upload failed: check MANIMBOT_S3_BUCKET and AWS credentials",
        )
    if isinstance(error, UnauthorizedError):
        return (ErrorCategory.UNAUTHORIZED, "Register the user first with user_register")
    if isinstance(error, ChatNotFoundError):
        return (ErrorCategory.CHAT_NOT_FOUND, "Chat not found: list chats with chat_list")
    if isinstance(error, UserConflictError):
        return (
            ErrorCategory.USER_CONFLICT,
            "Email already registered: use the clerk_id it was registered with",
        )
    if isinstance(error, ProviderError):
        if error.status_code == 429:
            return (ErrorCategory.API_QUOTA_EXCEEDED, "Rate limit hit: wait and retry")
        return (
            ErrorCategory.PROVIDER_FAILED,
            "Gemini request failed: check API key and model name",
        )
    return (ErrorCategory.UNKNOWN, "Unexpected server error: check server logs")


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception.

    Only the exception summary is exposed; subprocess output stays in the
    logs, and exceptions from outside this package are reported as
    ``internal error``.
    """
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.PROVIDER_FAILED,
        ErrorCategory.RENDER_TIMEOUT,
    }
    return ToolError(
        error=str(error) if isinstance(error, ManimbotError) else "internal error",
        category=cat.value,
        hint=hint,
        retryable=retryable,
    ).model_dump(mode="json")
