"""Models describing model invocations, attempts, and generation results."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .quality import QuizQualityReport
from .quiz import CanonicalQuiz


class FailureKind(str, Enum):
    """Why an attempt did not produce an acceptable quiz."""

    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    EMPTY_OUTPUT = "empty_output"
    TRUNCATED = "truncated"
    JSON_UNRECOVERABLE = "json_unrecoverable"
    UNRECOGNIZED_STRUCTURE = "unrecognized_structure"
    INVALID_QUESTION = "invalid_question"
    LOW_QUALITY = "low_quality"
    INTERNAL_ERROR = "internal_error"


class RawModelResponse(BaseModel):
    """What one model invocation produced."""

    success: bool
    content: str | None = None
    finish_reason: str | None = None
    truncated: bool = False
    error: str | None = None
    failure_kind: FailureKind | None = Field(default=None, description="Set when success is False")


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    EXHAUSTED = "exhausted"


class AttemptRecord(BaseModel):
    """Diagnostic trace of one attempt."""

    attempt: int = Field(..., ge=1)
    max_tokens: int = Field(..., ge=1)
    temperature: float = Field(..., ge=0.0, le=2.0)
    strict: bool = False
    outcome: AttemptOutcome
    failure_kind: FailureKind | None = None
    reason: str | None = None
    score: int | None = Field(default=None, ge=0, le=100)
    finish_reason: str | None = None
    elapsed_seconds: float = Field(default=0.0, ge=0.0)


class GenerationDiagnostics(BaseModel):
    """Everything a caller needs to understand how a result was reached."""

    started_at: datetime = Field(default_factory=datetime.now)
    model_used: str | None = None
    attempts: list[AttemptRecord] = Field(default_factory=list)
    best_score: int | None = Field(default=None, ge=0, le=100)
    last_failure_kind: FailureKind | None = None
    last_failure_reason: str | None = None
    warnings: list[str] = Field(default_factory=list)
    content_confidence: int | None = Field(default=None, ge=0, le=100)
    system_prompt: str | None = None
    prompt: str | None = None

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class GenerationResult(BaseModel):
    """Upward interface of the generation pipeline.

    On failure ``quiz`` may still hold the best structurally valid quiz seen,
    for manual review; ``success`` is what callers must check.
    """

    success: bool
    quiz: CanonicalQuiz | None = None
    error: str | None = None
    quality: QuizQualityReport | None = None
    needs_review: bool = False
    diagnostics: GenerationDiagnostics = Field(default_factory=GenerationDiagnostics)
