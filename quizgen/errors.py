"""Exceptions raised inside pipeline stages.

The orchestrator catches every one of these and turns it into a retry or a
structured failure; none of them reach callers of ``QuizGenerator``.
"""

from quizgen.models.generation import FailureKind


class QuizGenerationError(Exception):
    """Base class for pipeline stage failures."""

    kind: FailureKind = FailureKind.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class JSONRecoveryError(QuizGenerationError):
    """No parseable JSON could be recovered from the model output."""

    kind = FailureKind.JSON_UNRECOVERABLE

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at character {offset})"
        super().__init__(message)
        self.offset = offset


class QuizStructureError(QuizGenerationError):
    """Parsed JSON does not have any recognized quiz shape."""

    kind = FailureKind.UNRECOGNIZED_STRUCTURE


class QuestionValidationError(QuizGenerationError):
    """A question breaks the rules of its type; the whole quiz is rejected."""

    kind = FailureKind.INVALID_QUESTION

    def __init__(self, question_number: int, message: str):
        super().__init__(f"Question {question_number}: {message}")
        self.question_number = question_number
