"""Data models for quiz generation."""

from .generation import (
    AttemptOutcome,
    AttemptRecord,
    FailureKind,
    GenerationDiagnostics,
    GenerationResult,
    RawModelResponse,
)
from .quality import (
    ContentReviewResult,
    IssueSeverity,
    IssueType,
    QualityCheckResult,
    QuestionQualityResult,
    QuizQualityReport,
    ValidationIssue,
)
from .quiz import (
    TRUE_FALSE_OPTIONS,
    CanonicalQuestion,
    CanonicalQuiz,
    Difficulty,
    EssayQuestion,
    FillBlankQuestion,
    GenerationRequest,
    MatchingPair,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderingQuestion,
    QuestionType,
    TrueFalseQuestion,
    canonical_question_adapter,
)

__all__ = [
    "TRUE_FALSE_OPTIONS",
    "Difficulty",
    "QuestionType",
    "GenerationRequest",
    "MatchingPair",
    "MultipleChoiceQuestion",
    "TrueFalseQuestion",
    "FillBlankQuestion",
    "EssayQuestion",
    "MatchingQuestion",
    "OrderingQuestion",
    "CanonicalQuestion",
    "CanonicalQuiz",
    "canonical_question_adapter",
    "QualityCheckResult",
    "QuestionQualityResult",
    "QuizQualityReport",
    "IssueSeverity",
    "IssueType",
    "ValidationIssue",
    "ContentReviewResult",
    "RawModelResponse",
    "FailureKind",
    "AttemptOutcome",
    "AttemptRecord",
    "GenerationDiagnostics",
    "GenerationResult",
]
