"""Per-Type Validator - Enforces the answer shape of every question type.

Validation mutates questions into their safe defaults where the fix is
unambiguous (true/false option order, emptied options for text answers) and
rejects the whole quiz on the first question that cannot be repaired.
"""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from quizgen.errors import QuestionValidationError, QuizStructureError
from quizgen.models.quiz import TRUE_FALSE_OPTIONS, CanonicalQuiz, GenerationRequest, QuestionType

logger = logging.getLogger(__name__)

KNOWN_TYPES = {question_type.value for question_type in QuestionType}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_index_list(value: Any, size: int, number: int, label: str) -> None:
    if not isinstance(value, list) or not value:
        raise QuestionValidationError(number, f"{label} correct_answer must be a non-empty array of indices")
    for index in value:
        if not _is_int(index) or not 0 <= index < size:
            raise QuestionValidationError(number, f"{label} correct_answer index {index!r} is out of range")


def _validate_multiple_choice(question: dict[str, Any], number: int) -> None:
    options = question.get("options")
    if not isinstance(options, list) or len(options) < 2:
        raise QuestionValidationError(number, "multiple_choice needs at least 2 options")
    if not all(isinstance(option, (str, int, float)) and not isinstance(option, bool) for option in options):
        raise QuestionValidationError(number, "multiple_choice options must be text")
    question["options"] = [str(option) for option in options]

    answer = question.get("correct_answer")
    if not _is_int(answer):
        raise QuestionValidationError(number, "multiple_choice correct_answer must be an integer index")
    if not 0 <= answer < len(options):
        raise QuestionValidationError(
            number, f"multiple_choice correct_answer {answer} is out of range for {len(options)} options"
        )


def _validate_true_false(question: dict[str, Any], number: int) -> None:
    answer = question.get("correct_answer")
    if isinstance(answer, bool):
        answer = 0 if answer else 1
    elif isinstance(answer, str) and answer.strip().lower() in ("true", "false"):
        answer = 0 if answer.strip().lower() == "true" else 1
    elif _is_int(answer):
        options = question.get("options")
        if (
            isinstance(options, list)
            and len(options) == 2
            and all(isinstance(option, str) for option in options)
            and [option.strip().lower() for option in options] == ["false", "true"]
        ):
            logger.debug("Question %d: reordering reversed true/false options", number)
            answer = 1 - answer if answer in (0, 1) else answer

    options = question.get("options")
    if not isinstance(options, list) or len(options) != 2 or not all(isinstance(o, str) for o in options):
        question["options"] = list(TRUE_FALSE_OPTIONS)
    elif {option.strip().lower() for option in options} == {"true", "false"}:
        question["options"] = list(TRUE_FALSE_OPTIONS)

    if answer not in (0, 1) or not _is_int(answer):
        raise QuestionValidationError(number, "true_false correct_answer must be 0 (True) or 1 (False)")
    question["correct_answer"] = answer


def _validate_text_answer(question: dict[str, Any], number: int, label: str) -> None:
    text = question.get("correct_answer_text")
    if not isinstance(text, str) or not text.strip():
        fallback = question.get("correct_answer")
        text = fallback if isinstance(fallback, str) else None
    if not text or not text.strip():
        raise QuestionValidationError(number, f"{label} needs a non-empty correct_answer_text")

    question["correct_answer_text"] = text.strip()
    question["options"] = []
    question["correct_answer"] = 0


def _validate_matching(question: dict[str, Any], number: int) -> None:
    options = question.get("options")
    if not isinstance(options, list) or not options:
        raise QuestionValidationError(number, "matching needs at least one left/right pair")

    pairs = []
    for option in options:
        if isinstance(option, list) and len(option) == 2:
            option = {"left": option[0], "right": option[1]}
        if (
            not isinstance(option, dict)
            or not isinstance(option.get("left"), str)
            or not isinstance(option.get("right"), str)
            or not option["left"].strip()
            or not option["right"].strip()
        ):
            raise QuestionValidationError(number, "matching options must be {left, right} pairs")
        pairs.append({"left": option["left"].strip(), "right": option["right"].strip()})
    question["options"] = pairs

    _require_index_list(question.get("correct_answer"), len(pairs), number, "matching")


def _validate_ordering(question: dict[str, Any], number: int) -> None:
    options = question.get("options")
    if not isinstance(options, list) or len(options) < 2:
        raise QuestionValidationError(number, "ordering needs at least 2 items")
    if not all(isinstance(option, str) for option in options):
        raise QuestionValidationError(number, "ordering items must be text")

    _require_index_list(question.get("correct_answer"), len(options), number, "ordering")


def _sanitize_metadata(question: dict[str, Any]) -> None:
    points = question.get("points")
    if not _is_int(points) or points < 1:
        question["points"] = 1

    tags = question.get("tags")
    question["tags"] = [tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else []

    time_limit = question.get("time_limit_seconds")
    if time_limit is not None and (not _is_int(time_limit) or time_limit < 1):
        question["time_limit_seconds"] = None

    if not isinstance(question.get("difficulty_level"), str):
        question["difficulty_level"] = None

    order_index = question.get("order_index")
    if not _is_int(order_index) or order_index < 0:
        question["order_index"] = 0


def validate_question(question: Any, index: int, allowed_types: Sequence[str]) -> None:
    """
    Validate one normalized question against the rules of its type.

    Args:
        question: Normalized question dict, repaired in place
        index: Zero-based position in the quiz
        allowed_types: Question type values the request permits

    Raises:
        QuestionValidationError: If the question is invalid
    """
    number = index + 1
    if not isinstance(question, dict):
        raise QuestionValidationError(number, "must be an object")

    text = question.get("question")
    if not isinstance(text, str) or not text.strip():
        raise QuestionValidationError(number, "missing question text")
    question["question"] = text.strip()

    question_type = question.get("question_type")
    if not question_type:
        raise QuestionValidationError(number, "missing question type")
    if question_type not in KNOWN_TYPES:
        raise QuestionValidationError(number, f"unknown question type {question_type!r}")
    if question_type not in allowed_types:
        raise QuestionValidationError(
            number,
            f"question type {question_type!r} is not allowed; expected one of {', '.join(allowed_types)}",
        )

    if question_type == QuestionType.MULTIPLE_CHOICE.value:
        _validate_multiple_choice(question, number)
    elif question_type == QuestionType.TRUE_FALSE.value:
        _validate_true_false(question, number)
    elif question_type == QuestionType.FILL_BLANK.value:
        _validate_text_answer(question, number, "fill_blank")
    elif question_type == QuestionType.ESSAY.value:
        _validate_text_answer(question, number, "essay")
    elif question_type == QuestionType.MATCHING.value:
        _validate_matching(question, number)
    elif question_type == QuestionType.ORDERING.value:
        _validate_ordering(question, number)

    if not isinstance(question.get("explanation"), str):
        question["explanation"] = ""
    _sanitize_metadata(question)


def validate_questions(questions: Any, request: GenerationRequest) -> None:
    """
    Validate every question of a normalized quiz.

    Raises:
        QuizStructureError: If there are no questions at all
        QuestionValidationError: On the first invalid question
    """
    if not isinstance(questions, list) or not questions:
        raise QuizStructureError("Quiz has no questions")

    for index, question in enumerate(questions):
        validate_question(question, index, request.type_values)


def build_canonical_quiz(quiz: dict[str, Any], request: GenerationRequest) -> CanonicalQuiz:
    """
    Validate a normalized quiz dict and build the canonical quiz from it.

    Args:
        quiz: Normalized quiz dict with required fields filled
        request: The generation request

    Returns:
        CanonicalQuiz

    Raises:
        QuizStructureError: If the quiz does not fit the canonical schema
        QuestionValidationError: If a question is invalid
    """
    validate_questions(quiz.get("questions"), request)

    try:
        return CanonicalQuiz.model_validate(quiz)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise QuizStructureError(f"Quiz does not match the canonical schema at {location}: {first['msg']}") from e
