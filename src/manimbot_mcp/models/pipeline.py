"""Generation workflow models: requests, attempts, artifacts and results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..complexity import ComplexityTier


class WorkflowStage(str, Enum):
    """States of the generation workflow.

    The workflow itself ends a validated run at VALIDATING; UPLOADING and
    SUCCEEDED belong to the caller that publishes the video.
    """

    ASSESSING = "assessing"
    GENERATING = "generating"
    EXTRACTING = "extracting"
    RENDERING = "rendering"
    PROBING = "probing"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class WorkflowStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GenerationRequest(BaseModel):
    """What one attempt sends to the model."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    prior_error_context: str | None = None


class WorkflowAttempt(BaseModel):
    """One pass through generate → render → validate.

    ``last_error`` is the failure text of the previous attempt and becomes
    the corrective context of this attempt's generation prompt.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(default=0, ge=0)
    last_error: str | None = None

    def request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(prompt=prompt, prior_error_context=self.last_error)


class RenderArtifact(BaseModel):
    """A rendered video located under an attempt's media root."""

    relative_path: str
    absolute_path: str
    duration_seconds: int


class WorkflowFailure(BaseModel):
    """Why a workflow stopped; ``message`` is safe to show to users."""

    category: str
    stage: WorkflowStage
    message: str


class WorkflowResult(BaseModel):
    """Terminal value of a workflow run."""

    status: WorkflowStatus
    tier: ComplexityTier
    attempts: int = 0
    explanation: str = ""
    artifact: RenderArtifact | None = None
    failure: WorkflowFailure | None = None
    stages: list[WorkflowStage] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is WorkflowStatus.SUCCEEDED
