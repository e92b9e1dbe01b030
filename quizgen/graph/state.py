"""State carried through the generation graph."""

import operator
from datetime import datetime
from typing import Annotated, TypedDict

from quizgen.config.settings import Settings
from quizgen.models.generation import AttemptRecord, FailureKind, GenerationResult, RawModelResponse
from quizgen.models.quality import QuizQualityReport
from quizgen.models.quiz import CanonicalQuiz, GenerationRequest


class GenerationState(TypedDict, total=False):
    """
    State for one generation request.

    Per-attempt fields are reset by ``prepare_attempt``; ``attempts`` and
    ``warnings`` accumulate across attempts.
    """

    # Input
    request: GenerationRequest
    max_attempts: int
    timeout: float | None
    started_at: datetime

    # Current attempt
    attempt: int
    max_tokens: int
    temperature: float
    strict: bool
    system_prompt: str
    prompt: str
    attempt_started: float
    raw_response: RawModelResponse | None
    quiz: CanonicalQuiz | None
    quality: QuizQualityReport | None
    failure_kind: FailureKind | None
    failure_reason: str | None

    # Across attempts
    attempts: Annotated[list[AttemptRecord], operator.add]
    warnings: Annotated[list[str], operator.add]
    content_confidence: int | None
    best_quiz: CanonicalQuiz | None
    best_quality: QuizQualityReport | None
    best_score: int | None
    last_failure_kind: FailureKind | None
    last_failure_reason: str | None

    # Output
    result: GenerationResult | None


def create_initial_state(
    request: GenerationRequest,
    settings: Settings,
    timeout: float | None = None,
) -> GenerationState:
    """
    Create the initial state for a generation request.

    Args:
        request: The validated generation request
        settings: Settings supplying the attempt budget
        timeout: Per-call model timeout overriding the configured one

    Returns:
        Initial GenerationState
    """
    return GenerationState(
        request=request,
        max_attempts=settings.max_attempts,
        timeout=timeout,
        started_at=datetime.now(),
        attempt=0,
        raw_response=None,
        quiz=None,
        quality=None,
        failure_kind=None,
        failure_reason=None,
        attempts=[],
        warnings=[],
        content_confidence=None,
        best_quiz=None,
        best_quality=None,
        best_score=None,
        last_failure_kind=None,
        last_failure_reason=None,
        result=None,
    )
