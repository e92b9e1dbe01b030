"""Pydantic models for quality scoring and raw content review."""

from enum import Enum

from pydantic import BaseModel, Field


class QualityCheckResult(BaseModel):
    """Outcome of a single Quality Matrix criterion."""

    criterion: str
    score: int = Field(..., ge=0, le=100)
    is_passing: bool
    feedback: str
    suggestions: list[str] = Field(default_factory=list)


class QuestionQualityResult(BaseModel):
    """All Quality Matrix checks for one question."""

    question_index: int = Field(default=0, ge=0)
    overall_score: int = Field(..., ge=0, le=100)
    is_passing: bool
    checks: list[QualityCheckResult] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    requires_manual_review: bool = False

    @property
    def failed_checks(self) -> list[str]:
        return [check.criterion for check in self.checks if not check.is_passing]

    def get_check(self, criterion: str) -> QualityCheckResult | None:
        return next((check for check in self.checks if check.criterion == criterion), None)


class QuizQualityReport(BaseModel):
    """Quality Matrix results aggregated over a quiz."""

    results: list[QuestionQualityResult] = Field(default_factory=list)
    overall_score: int = Field(default=0, ge=0, le=100)
    is_passing: bool = False
    passing_questions: int = Field(default=0, ge=0)
    needs_review: int = Field(default=0, ge=0)

    @property
    def total_questions(self) -> int:
        return len(self.results)

    @property
    def requires_manual_review(self) -> bool:
        return self.needs_review > 0


class IssueSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueType(str, Enum):
    JSON_SYNTAX = "json_syntax"
    STRUCTURE = "structure"
    CONTENT_QUALITY = "content_quality"
    DATA_INTEGRITY = "data_integrity"
    LANGUAGE = "language"


class ValidationIssue(BaseModel):
    """A single finding from the raw content review."""

    type: IssueType
    severity: IssueSeverity
    message: str
    location: str | None = None
    suggested_fix: str | None = None


class ContentReviewResult(BaseModel):
    """Review of a raw quiz JSON string before it is trusted."""

    is_valid: bool = False
    issues: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    confidence: int = Field(default=0, ge=0, le=100)

    def issues_with(self, severity: IssueSeverity) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == severity]
