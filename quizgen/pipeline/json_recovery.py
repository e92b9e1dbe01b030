"""JSON Recovery - Extracts and repairs a JSON document from raw model output.

Model output is treated as untrusted text. Recovery never raises: the result
either carries parsed data or the parse error and its character offset.
"""

import json
import logging
import re
from typing import Any, NamedTuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

FENCED_BLOCK_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?(.*?)```", re.DOTALL)
OPENING_FENCE_RE = re.compile(r"^```(?:json|JSON)?[ \t]*\n?")
QUESTION_ARRAY_KEY_RE = re.compile(r'"(?:questions|quiz)"\s*:\s*$')

CLOSERS = {"{": "}", "[": "]"}
# A closer directly followed by this opener is missing the comma between them
ADJACENT_OPENERS = {"}": "{", "]": "["}


class RecoveredJSON(BaseModel):
    """Outcome of recovering JSON from model output."""

    data: Any = None
    candidate: str | None = Field(default=None, description="The text that was finally parsed")
    error: str | None = None
    error_offset: int | None = None
    repairs: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.data is not None


class _Frame(NamedTuple):
    opener: str
    position: int
    holds_questions: bool


class _ScanResult(NamedTuple):
    end: int | None
    stack: list[_Frame]
    in_string: bool
    # Position just past the last complete question, and the closers needed there
    cut: int | None
    cut_closers: str

    @property
    def truncated(self) -> bool:
        return self.end is None and (bool(self.stack) or self.in_string)


def _closers_for(stack: list[_Frame]) -> str:
    return "".join(CLOSERS[frame.opener] for frame in reversed(stack))


def _scan(text: str) -> _ScanResult:
    """Walk ``text`` from its first character, tracking strings and open brackets.

    Stops at the closer that balances the first opener.
    """
    stack: list[_Frame] = []
    in_string = False
    escaped = False
    cut: int | None = None
    cut_closers = ""

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in CLOSERS:
            # A top-level array holds the questions in the bare-list shape
            holds_questions = (ch == "[" and not stack) or (
                ch == "[" and QUESTION_ARRAY_KEY_RE.search(text[max(0, i - 40) : i]) is not None
            )
            stack.append(_Frame(ch, i, holds_questions))
        elif ch in "}]":
            if not stack:
                continue
            closed = stack.pop()
            if not stack:
                return _ScanResult(i, stack, False, cut, cut_closers)
            if (ch == "}" and stack[-1].holds_questions) or closed.holds_questions:
                cut = i + 1
                cut_closers = _closers_for(stack)

    return _ScanResult(None, stack, in_string, cut, cut_closers)


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences around a JSON payload."""
    text = text.strip()
    match = FENCED_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()
    # Opening fence with the closing fence cut off
    return OPENING_FENCE_RE.sub("", text).strip()


def extract_json_candidate(text: str) -> str | None:
    """
    Cut the JSON document out of surrounding prose.

    The candidate starts at the first ``{`` (or at a leading ``[`` for the
    bare-array shape) and ends at its balancing closer. When the document
    is cut off, everything from the opener on is returned for repair.

    Args:
        text: Raw model output

    Returns:
        Candidate JSON text, or None if there is no opening brace
    """
    text = strip_code_fences(text)
    stripped = text.lstrip()
    if stripped.startswith("["):
        start = text.index("[")
    else:
        start = text.find("{")
        if start == -1:
            return None

    body = text[start:]
    scan = _scan(body)
    if scan.end is not None:
        return body[: scan.end + 1]
    return body


def repair_truncated_json(text: str) -> str | None:
    """
    Keep the complete questions of a cut-off document and close it.

    Finds the ``questions`` array (or ``quiz``, or a top-level array), drops
    the partial element after the last complete one and appends the closers
    still open at that point.

    Args:
        text: Candidate JSON that ends before its structure is closed

    Returns:
        Repaired JSON text, the input unchanged if it is not truncated,
        or None if no complete question precedes the cut
    """
    scan = _scan(text)
    if not scan.truncated:
        return text
    if scan.cut is None:
        return None
    return text[: scan.cut] + scan.cut_closers


def _next_significant(text: str, start: int) -> str | None:
    i = start
    while i < len(text) and text[i].isspace():
        i += 1
    return text[i] if i < len(text) else None


def _fix_commas(text: str) -> tuple[str, bool, bool]:
    """
    Drop trailing commas and insert missing ones between adjacent values.

    Only characters outside string literals are edited.

    Returns:
        Tuple of (fixed text, whether commas were removed, whether commas were inserted)
    """
    out: list[str] = []
    in_string = False
    escaped = False
    removed = inserted = False

    for i, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "," and _next_significant(text, i + 1) in ("}", "]"):
            removed = True
            continue

        out.append(ch)
        if ch in ADJACENT_OPENERS and _next_significant(text, i + 1) == ADJACENT_OPENERS[ch]:
            out.append(",")
            inserted = True

    return "".join(out), removed, inserted


def fix_common_json_issues(text: str) -> tuple[str, list[str]]:
    """
    Apply the standard repairs for malformed model JSON, in order.

    Args:
        text: Candidate JSON text

    Returns:
        Tuple of (fixed text, names of the repairs that changed it)
    """
    applied: list[str] = []

    def record(name: str, before: str, after: str) -> str:
        if after != before:
            applied.append(name)
        return after

    fixed = text
    if _scan(fixed).in_string:
        fixed = record("closed unterminated string", fixed, fixed + '"')

    fixed, removed, inserted = _fix_commas(fixed)
    if removed:
        applied.append("removed trailing commas")
    if inserted:
        applied.append("inserted missing commas")

    scan = _scan(fixed)
    if scan.end is None and scan.stack:
        fixed = record("balanced brackets", fixed, fixed.rstrip() + _closers_for(scan.stack))
        fixed, _, _ = _fix_commas(fixed)

    return fixed, applied


def safe_parse(text: str) -> tuple[Any, str | None, int | None]:
    """
    Parse JSON without raising.

    Returns:
        Tuple of (data, error message, error offset)
    """
    try:
        return json.loads(text), None, None
    except json.JSONDecodeError as e:
        return None, e.msg, e.pos


def recover_json(text: str | None) -> RecoveredJSON:
    """
    Recover a JSON document from raw model output.

    Args:
        text: Raw model output

    Returns:
        RecoveredJSON with data, or with the last parse error and offset
    """
    if not text or not text.strip():
        return RecoveredJSON(error="Model output is empty")

    candidate = extract_json_candidate(text)
    if candidate is None:
        logger.warning("No opening brace in model output (%d chars)", len(text))
        return RecoveredJSON(error="No JSON object found in model output")

    data, error, offset = safe_parse(candidate)
    if error is None:
        return RecoveredJSON(data=data, candidate=candidate)

    repairs: list[str] = []
    if _scan(candidate).truncated:
        repaired = repair_truncated_json(candidate)
        if repaired is not None and repaired != candidate:
            logger.warning("Output was cut off, keeping complete questions only")
            candidate = repaired
            repairs.append("dropped incomplete trailing question")
            data, error, offset = safe_parse(candidate)
            if error is None:
                return RecoveredJSON(data=data, candidate=candidate, repairs=repairs)

    fixed, applied = fix_common_json_issues(candidate)
    repairs.extend(applied)
    if applied:
        logger.warning("Applied JSON repairs: %s", ", ".join(applied))

    data, error, offset = safe_parse(fixed)
    if error is not None:
        logger.warning("JSON still invalid after repair: %s at char %s", error, offset)
        return RecoveredJSON(candidate=fixed, error=error, error_offset=offset, repairs=repairs)
    return RecoveredJSON(data=data, candidate=fixed, repairs=repairs)
