"""Structural Normalizer - Maps the quiz shapes models produce onto one layout."""

import logging
from typing import Any

from quizgen.models.quiz import GenerationRequest

logger = logging.getLogger(__name__)

QUESTION_TEXT_KEYS = ("question", "question_text", "text")
QUESTION_TYPE_ALIASES = {"single_choice": "multiple_choice"}


def _fallback_description(request: GenerationRequest) -> str:
    return f"A {request.difficulty.value} level quiz about {request.topic}"


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_question_fields(question: Any, index: int = 0) -> Any:
    """
    Rename aliased question fields to their canonical names.

    Args:
        question: One raw question (anything that is not a dict is returned as is)
        index: Position of the question in the quiz

    Returns:
        A new dict with canonical keys
    """
    if not isinstance(question, dict):
        return question

    normalized = dict(question)
    text = None
    for key in QUESTION_TEXT_KEYS:
        text = _non_empty_str(question.get(key))
        if text:
            break
    normalized.pop("question_text", None)
    normalized.pop("text", None)
    normalized["question"] = text

    question_type = question.get("question_type", question.get("type"))
    normalized.pop("type", None)
    if isinstance(question_type, str):
        question_type = question_type.strip().lower().replace("-", "_").replace(" ", "_")
        question_type = QUESTION_TYPE_ALIASES.get(question_type, question_type)
    normalized["question_type"] = question_type

    if normalized.get("options") is None:
        normalized["options"] = []
    if not isinstance(normalized.get("explanation"), str):
        normalized["explanation"] = ""
    normalized.setdefault("order_index", index)
    return normalized


def normalize_quiz_structure(raw: Any, request: GenerationRequest) -> dict[str, Any] | None:
    """
    Map any recognized quiz shape onto ``{title, description, questions, ...}``.

    Recognized shapes, in priority order:
    ``{quiz_title, quiz_description?, questions}``, ``{quiz: [...]}``,
    ``{title, questions}``, ``{questions}`` and a bare list of questions.

    Args:
        raw: Parsed model JSON
        request: The generation request, used for fallback title and description

    Returns:
        Normalized quiz dict, or None for an unrecognized shape
    """
    if isinstance(raw, dict) and isinstance(raw.get("quiz"), dict):
        # A wrapper object around one of the shapes below
        raw = raw["quiz"]

    if isinstance(raw, list):
        quiz: dict[str, Any] = {
            "title": request.topic,
            "description": _fallback_description(request),
            "questions": raw,
        }
    elif not isinstance(raw, dict):
        logger.warning("Model JSON is a %s, not a quiz object", type(raw).__name__)
        return None
    elif _non_empty_str(raw.get("quiz_title")) and isinstance(raw.get("questions"), list):
        quiz = {key: value for key, value in raw.items() if key not in ("quiz_title", "quiz_description")}
        quiz["title"] = raw["quiz_title"].strip()
        quiz["description"] = _non_empty_str(raw.get("quiz_description")) or ""
    elif isinstance(raw.get("quiz"), list):
        quiz = {
            "title": request.topic,
            "description": _fallback_description(request),
            "questions": raw["quiz"],
        }
    elif _non_empty_str(raw.get("title")) and isinstance(raw.get("questions"), list):
        quiz = dict(raw)
    elif isinstance(raw.get("questions"), list):
        quiz = dict(raw)
        quiz["title"] = request.topic
        quiz["description"] = _non_empty_str(raw.get("description")) or _fallback_description(request)
    else:
        logger.warning("Unrecognized quiz structure with keys: %s", sorted(raw))
        return None

    quiz["questions"] = [normalize_question_fields(q, i) for i, q in enumerate(quiz["questions"])]
    return quiz


def ensure_required_fields(
    quiz: dict[str, Any],
    request: GenerationRequest,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    """
    Fill quiz-level defaults and force the requested difficulty.

    Args:
        quiz: Normalized quiz dict, updated in place
        request: The generation request
        warnings: Optional list that collects non-fatal findings

    Returns:
        The same quiz dict
    """
    notes = warnings if warnings is not None else []

    quiz["title"] = _non_empty_str(quiz.get("title")) or request.topic
    if not isinstance(quiz.get("description"), str):
        quiz["description"] = _fallback_description(request)
    quiz["category"] = _non_empty_str(quiz.get("category")) or request.subject

    given = quiz.get("difficulty")
    if given is not None and given != request.difficulty.value:
        notes.append(f"Model returned difficulty {given!r}, using {request.difficulty.value!r}")
    quiz["difficulty"] = request.difficulty.value

    duration = quiz.get("duration_minutes")
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 1:
        quiz["duration_minutes"] = request.default_duration

    passing_score = quiz.get("passing_score")
    if isinstance(passing_score, bool) or not isinstance(passing_score, int) or not 0 <= passing_score <= 100:
        quiz["passing_score"] = 70

    count = len(quiz.get("questions") or [])
    if count != request.question_count:
        message = f"Question count mismatch: expected {request.question_count}, got {count}"
        logger.warning(message)
        notes.append(message)

    return quiz
