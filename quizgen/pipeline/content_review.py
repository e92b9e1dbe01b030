"""Content review - Rule-based audit of a raw quiz JSON string.

Unlike the Quality Matrix this works on the text the model returned, before
recovery, and reports what a reviewer would need to fix.
"""

import logging
import re
from typing import Any

from quizgen.models.quality import ContentReviewResult, IssueSeverity, IssueType, ValidationIssue
from quizgen.models.quiz import GenerationRequest
from quizgen.pipeline.json_recovery import safe_parse, strip_code_fences

logger = logging.getLogger(__name__)

SEVERITY_DEDUCTIONS = {
    IssueSeverity.CRITICAL: 25,
    IssueSeverity.HIGH: 15,
    IssueSeverity.MEDIUM: 8,
    IssueSeverity.LOW: 3,
}

REQUIRED_QUIZ_FIELDS = ("title", "description", "category", "difficulty", "duration_minutes", "questions")
REQUIRED_QUESTION_FIELDS = ("question", "question_type", "explanation")
MAX_QUESTION_LENGTH = 2000
MIN_EXPLANATION_LENGTH = 10

CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _issue(
    issue_type: IssueType,
    severity: IssueSeverity,
    message: str,
    location: str | None = None,
    suggested_fix: str | None = None,
) -> ValidationIssue:
    return ValidationIssue(
        type=issue_type,
        severity=severity,
        message=message,
        location=location,
        suggested_fix=suggested_fix,
    )


def _has_unterminated_string(text: str) -> bool:
    in_string = False
    escaped = False
    for ch in text:
        if escaped:
            escaped = False
        elif ch == "\\" and in_string:
            escaped = True
        elif ch == '"':
            in_string = not in_string
    return in_string


def _check_question(question: Any, index: int) -> list[ValidationIssue]:
    location = f"questions[{index}]"
    number = index + 1
    if not isinstance(question, dict):
        return [_issue(IssueType.STRUCTURE, IssueSeverity.HIGH, f"Question {number} is not an object", location)]

    issues = []
    for field in REQUIRED_QUESTION_FIELDS:
        value = question.get(field)
        if not value or (isinstance(value, str) and not value.strip()):
            issues.append(
                _issue(
                    IssueType.STRUCTURE,
                    IssueSeverity.HIGH,
                    f"Question {number} missing required field: {field}",
                    f"{location}.{field}",
                )
            )

    if question.get("question_type") == "multiple_choice":
        options = question.get("options")
        if not isinstance(options, list) or len(options) != 4:
            issues.append(
                _issue(
                    IssueType.STRUCTURE,
                    IssueSeverity.HIGH,
                    f"Question {number} multiple_choice must have exactly 4 options",
                    f"{location}.options",
                )
            )
        answer = question.get("correct_answer")
        if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer <= 3:
            issues.append(
                _issue(
                    IssueType.STRUCTURE,
                    IssueSeverity.HIGH,
                    f"Question {number} correct_answer must be a number 0-3",
                    f"{location}.correct_answer",
                )
            )

    text = question.get("question")
    if isinstance(text, str) and len(text) > MAX_QUESTION_LENGTH:
        issues.append(
            _issue(
                IssueType.DATA_INTEGRITY,
                IssueSeverity.MEDIUM,
                f"Question {number} text exceeds {MAX_QUESTION_LENGTH} character limit",
                f"{location}.question",
            )
        )
    return issues


def _check_structure(content: str) -> tuple[list[ValidationIssue], Any]:
    if not content.startswith("{") or not content.endswith("}"):
        issue = _issue(
            IssueType.JSON_SYNTAX,
            IssueSeverity.CRITICAL,
            "Content must be a JSON object starting with { and ending with }",
            suggested_fix="Ensure the model response contains only a JSON object",
        )
        return [issue], None

    issues = []
    if '\\"\\' in content or "\\\\\\" in content:
        issues.append(
            _issue(
                IssueType.JSON_SYNTAX,
                IssueSeverity.HIGH,
                "Double-escaped characters detected",
                suggested_fix="Avoid escaping inside string values",
            )
        )
    if _has_unterminated_string(content):
        issues.append(
            _issue(
                IssueType.JSON_SYNTAX,
                IssueSeverity.CRITICAL,
                "Unterminated string literals detected",
                suggested_fix="Ensure all quoted strings are properly closed",
            )
        )

    data, error, offset = safe_parse(content)
    if error is not None:
        issues.append(
            _issue(
                IssueType.JSON_SYNTAX,
                IssueSeverity.CRITICAL,
                f"JSON parsing failed: {error}",
                location=f"character {offset}",
                suggested_fix="Fix JSON syntax errors before proceeding",
            )
        )
        return issues, None
    if not isinstance(data, dict):
        issues.append(_issue(IssueType.STRUCTURE, IssueSeverity.CRITICAL, "Top-level JSON value is not an object"))
        return issues, None

    for field in REQUIRED_QUIZ_FIELDS:
        if not data.get(field):
            issues.append(
                _issue(
                    IssueType.STRUCTURE,
                    IssueSeverity.CRITICAL,
                    f"Required field '{field}' is missing",
                    f"root.{field}",
                )
            )

    questions = data.get("questions")
    if isinstance(questions, list):
        if not questions:
            issues.append(_issue(IssueType.STRUCTURE, IssueSeverity.CRITICAL, "Questions array is empty"))
        for index, question in enumerate(questions):
            issues.extend(_check_question(question, index))
    return issues, data


def _check_request_fit(data: dict[str, Any], request: GenerationRequest) -> list[ValidationIssue]:
    issues = []
    questions = data.get("questions")
    if isinstance(questions, list) and len(questions) != request.question_count:
        issues.append(
            _issue(
                IssueType.DATA_INTEGRITY,
                IssueSeverity.HIGH,
                f"Expected {request.question_count} questions, got {len(questions)}",
                suggested_fix="Adjust question count to match request",
            )
        )

    if data.get("difficulty") != request.difficulty.value:
        issues.append(
            _issue(
                IssueType.DATA_INTEGRITY,
                IssueSeverity.MEDIUM,
                f'Difficulty mismatch: expected "{request.difficulty.value}", got "{data.get("difficulty")}"',
                suggested_fix="Ensure difficulty field matches request exactly",
            )
        )

    if isinstance(questions, list):
        thin = [
            q
            for q in questions
            if not isinstance(q, dict)
            or not isinstance(q.get("explanation"), str)
            or len(q["explanation"].strip()) < MIN_EXPLANATION_LENGTH
        ]
        if thin:
            issues.append(
                _issue(
                    IssueType.CONTENT_QUALITY,
                    IssueSeverity.MEDIUM,
                    f"{len(thin)} questions have insufficient explanations",
                    suggested_fix="Provide detailed explanations for all questions",
                )
            )
    return issues


def _check_language(content: str, request: GenerationRequest) -> list[ValidationIssue]:
    issues = []
    if request.language.lower() != "english" and ('"True"' in content or '"False"' in content):
        issues.append(
            _issue(
                IssueType.LANGUAGE,
                IssueSeverity.MEDIUM,
                f'Content contains English terms ("True"/"False") when {request.language} was requested',
                suggested_fix=f"Translate all content to {request.language}",
            )
        )
    if CONTROL_CHARS_RE.search(content):
        issues.append(
            _issue(
                IssueType.LANGUAGE,
                IssueSeverity.LOW,
                "Content contains control characters",
                suggested_fix="Use standard Unicode characters for the target language",
            )
        )
    return issues


def confidence_score(issues: list[ValidationIssue]) -> int:
    """Start at 100 and deduct per issue by severity."""
    return max(0, 100 - sum(SEVERITY_DEDUCTIONS[issue.severity] for issue in issues))


def _recommendations(issues: list[ValidationIssue], request: GenerationRequest) -> list[str]:
    recommendations = []
    if any(issue.severity == IssueSeverity.CRITICAL for issue in issues):
        recommendations.append("Address critical issues before using this content")
    if any(issue.type == IssueType.JSON_SYNTAX for issue in issues):
        recommendations.append("Improve JSON generation instructions to prevent syntax errors")
    if any(issue.type == IssueType.LANGUAGE for issue in issues) and request.language.lower() != "english":
        recommendations.append(f"Ensure all content is properly translated to {request.language}")
    if issues:
        recommendations.append("Consider using stricter prompts to prevent common issues")
    return recommendations


def review_quiz_content(content: str, request: GenerationRequest) -> ContentReviewResult:
    """
    Review raw quiz JSON text against structural and request rules.

    Args:
        content: Quiz JSON as returned by the model (code fences allowed)
        request: The generation request the content should satisfy

    Returns:
        ContentReviewResult; valid means no critical and at most one high issue
    """
    cleaned = strip_code_fences(content or "")
    issues, data = _check_structure(cleaned)
    if data is not None:
        issues.extend(_check_request_fit(data, request))
    issues.extend(_check_language(cleaned, request))

    critical = sum(1 for issue in issues if issue.severity == IssueSeverity.CRITICAL)
    high = sum(1 for issue in issues if issue.severity == IssueSeverity.HIGH)
    result = ContentReviewResult(
        is_valid=critical == 0 and high <= 1,
        issues=issues,
        recommendations=_recommendations(issues, request),
        confidence=confidence_score(issues),
    )
    logger.debug(
        "Content review: valid=%s, %d issues, confidence %d",
        result.is_valid,
        len(result.issues),
        result.confidence,
    )
    return result
