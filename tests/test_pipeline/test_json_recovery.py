"""Tests for JSON recovery from raw model output."""

import json

from quizgen.pipeline.json_recovery import (
    extract_json_candidate,
    fix_common_json_issues,
    recover_json,
    repair_truncated_json,
    strip_code_fences,
)

TRUNCATED_QUIZ = (
    '{"title": "T", "questions": [{"question": "q1"}, {"question": "q2"}, '
    '{"question": "q3", "options": ["Photo'
)


class TestStripCodeFences:
    """Test removing Markdown fences."""

    def test_json_fence(self):
        """Test a ```json fenced block."""
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_with_prose(self):
        """Test a fenced block surrounded by prose."""
        text = 'Here is the quiz:\n```\n{"a": 1}\n```\nEnjoy!'

        assert strip_code_fences(text) == '{"a": 1}'

    def test_unclosed_fence(self):
        """Test an opening fence whose closing fence was cut off."""
        assert strip_code_fences('```json\n{"a": 1') == '{"a": 1'


class TestExtractJsonCandidate:
    """Test cutting the JSON document out of surrounding text."""

    def test_object_inside_prose(self):
        """Test text before and after the object is dropped."""
        text = 'Sure! {"title": "T", "questions": []} Let me know if you need more.'

        assert extract_json_candidate(text) == '{"title": "T", "questions": []}'

    def test_braces_inside_strings_ignored(self):
        """Test that brackets in string values do not end the object."""
        text = '{"question": "What does } mean?", "options": ["]"]} trailing'

        assert extract_json_candidate(text) == '{"question": "What does } mean?", "options": ["]"]}'

    def test_bare_array(self):
        """Test a leading array is kept as the candidate."""
        assert extract_json_candidate('[{"question": "q"}] done') == '[{"question": "q"}]'

    def test_no_opening_brace(self):
        """Test text without JSON."""
        assert extract_json_candidate("I cannot create that quiz.") is None

    def test_cut_off_document_returned_whole(self):
        """Test an unbalanced document is returned from its opener on."""
        assert extract_json_candidate("Quiz: " + TRUNCATED_QUIZ) == TRUNCATED_QUIZ


class TestRepairTruncatedJson:
    """Test recovering the complete questions of a cut-off document."""

    def test_keeps_complete_questions(self):
        """Test the partial trailing question is dropped."""
        repaired = repair_truncated_json(TRUNCATED_QUIZ)

        data = json.loads(repaired)
        assert data["title"] == "T"
        assert [q["question"] for q in data["questions"]] == ["q1", "q2"]

    def test_complete_document_unchanged(self):
        """Test a balanced document is returned as is."""
        text = '{"questions": [{"question": "q1"}]}'

        assert repair_truncated_json(text) == text

    def test_no_complete_question(self):
        """Test that nothing can be kept when the first question is cut."""
        assert repair_truncated_json('{"title": "T", "questions": [{"question": "q1') is None

    def test_bare_array_truncated(self):
        """Test truncation inside the bare-array shape."""
        repaired = repair_truncated_json('[{"question": "q1"}, {"question": "q2", "opt')

        assert json.loads(repaired) == [{"question": "q1"}]

    def test_quiz_key_truncated(self):
        """Test truncation inside a quiz array."""
        repaired = repair_truncated_json('{"quiz": [{"question": "q1"}, {"question"')

        assert json.loads(repaired) == {"quiz": [{"question": "q1"}]}


class TestFixCommonJsonIssues:
    """Test the standard repairs."""

    def test_trailing_commas(self):
        """Test trailing commas are removed."""
        fixed, applied = fix_common_json_issues('{"questions": [{"question": "a",},],}')

        assert json.loads(fixed) == {"questions": [{"question": "a"}]}
        assert applied == ["removed trailing commas"]

    def test_missing_commas_between_objects(self):
        """Test commas are inserted between adjacent objects."""
        fixed, applied = fix_common_json_issues('{"questions": [{"question": "a"} {"question": "b"}]}')

        assert len(json.loads(fixed)["questions"]) == 2
        assert applied == ["inserted missing commas"]

    def test_commas_inside_strings_untouched(self):
        """Test that comma repairs leave string values alone."""
        original = {"questions": [{"question": "Fill in: red, ]", "hint": "a}{b", "note": "x ,} y ][ z"}]}
        text = json.dumps(original, separators=(",", ":"))[:-2] + ",]}"

        fixed, applied = fix_common_json_issues(text)

        assert json.loads(fixed) == original
        assert applied == ["removed trailing commas"]

    def test_missing_comma_between_arrays(self):
        """Test commas are inserted between adjacent arrays."""
        fixed, applied = fix_common_json_issues('{"correct_answer": [[0, 1] [1, 0]]}')

        assert json.loads(fixed) == {"correct_answer": [[0, 1], [1, 0]]}
        assert applied == ["inserted missing commas"]

    def test_unterminated_string_and_brackets(self):
        """Test closing a string and the open brackets."""
        fixed, applied = fix_common_json_issues('{"questions": [{"question": "q1')

        assert json.loads(fixed) == {"questions": [{"question": "q1"}]}
        assert applied == ["closed unterminated string", "balanced brackets"]

    def test_valid_json_untouched(self):
        """Test that valid JSON gets no repairs."""
        fixed, applied = fix_common_json_issues('{"a": [1, 2]}')

        assert fixed == '{"a": [1, 2]}'
        assert applied == []


class TestRecoverJson:
    """Test the full recovery sequence."""

    def test_plain_json(self, good_quiz_payload):
        """Test valid JSON parses with no repairs."""
        result = recover_json(json.dumps(good_quiz_payload))

        assert result.ok
        assert result.data == good_quiz_payload
        assert result.repairs == []

    def test_fenced_json_with_prose(self, good_quiz_payload):
        """Test fences and commentary around the payload."""
        text = f"Here you go:\n```json\n{json.dumps(good_quiz_payload, indent=2)}\n```\nGood luck!"

        result = recover_json(text)

        assert result.data == good_quiz_payload

    def test_trailing_comma_reproduces_object(self, good_quiz_payload):
        """Test a trailing comma repair yields the intended object."""
        text = json.dumps(good_quiz_payload)[:-1] + ",}"

        result = recover_json(text)

        assert result.data == good_quiz_payload
        assert "removed trailing commas" in result.repairs

    def test_trailing_comma_with_brackets_in_strings(self):
        """Test the repaired object matches the original when strings hold brackets and commas."""
        original = {"questions": [{"question": "Fill in: red, ]", "hint": "a}{b"}]}
        text = json.dumps(original, separators=(",", ":"))[:-2] + ",]}"

        result = recover_json(text)

        assert result.data == original
        assert result.repairs == ["removed trailing commas"]

    def test_truncated_output(self):
        """Test truncation keeps the complete questions."""
        result = recover_json(TRUNCATED_QUIZ)

        assert result.ok
        assert len(result.data["questions"]) == 2
        assert result.repairs == ["dropped incomplete trailing question"]

    def test_empty_output(self):
        """Test empty output."""
        result = recover_json("   ")

        assert not result.ok
        assert result.error == "Model output is empty"

    def test_no_json(self):
        """Test output without any JSON object."""
        result = recover_json("I'm sorry, I can't help with that.")

        assert not result.ok
        assert result.error == "No JSON object found in model output"

    def test_unrepairable_reports_offset(self):
        """Test that the parse error and its character offset are reported."""
        result = recover_json('{"title": "T" "questions": []}')

        assert not result.ok
        assert "delimiter" in result.error
        assert result.error_offset == 14
