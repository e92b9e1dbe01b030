"""End-to-end tests for the generation workflow with a scripted model."""

import json

from quizgen.generator import QuizGenerator
from quizgen.models.generation import AttemptOutcome, FailureKind
from quizgen.models.quiz import QuestionType
from quizgen.pipeline.prompts import QUESTION_TYPE_EXAMPLES
from tests.helpers import PHOTOSYNTHESIS_MC, PHOTOSYNTHESIS_TF, WEAK_MC, ai_message, quiz_payload

FIVE_QUESTIONS = [PHOTOSYNTHESIS_MC, PHOTOSYNTHESIS_TF, PHOTOSYNTHESIS_MC, PHOTOSYNTHESIS_TF, PHOTOSYNTHESIS_MC]


def cut_inside_question(payload: dict, number: int) -> str:
    """Serialize ``payload`` and cut it off halfway through question ``number``."""
    text = json.dumps(payload)
    start = 0
    for _ in range(number):
        start = text.index('{"question": ', start + 1)
    return text[: start + 40]


class TestQuizGenerator:
    """Test QuizGenerator.generate end to end."""

    def test_first_attempt_success(self, test_settings, photosynthesis_request, good_quiz_payload, scripted_model):
        """Test a valid quiz is accepted on the first attempt."""
        model, adapter = scripted_model([ai_message(good_quiz_payload)])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert result.success
        assert result.error is None
        assert result.quiz.total_questions == 2
        assert result.quiz.difficulty.value == "beginner"
        assert result.quality.overall_score == 97
        assert not result.needs_review
        assert result.diagnostics.attempt_count == 1
        assert result.diagnostics.attempts[0].outcome == AttemptOutcome.SUCCESS
        assert result.diagnostics.model_used == "scripted-model"
        assert model.calls[0]["max_tokens"] == 8192
        assert model.calls[0]["temperature"] == 0.7

    def test_prompt_examples_accepted_for_review(self, test_settings, photosynthesis_request, scripted_model):
        """Test the prompt's own example questions are accepted as good enough and flagged for review."""
        examples = [
            json.loads(QUESTION_TYPE_EXAMPLES[QuestionType.MULTIPLE_CHOICE]),
            json.loads(QUESTION_TYPE_EXAMPLES[QuestionType.TRUE_FALSE]),
        ]
        _, adapter = scripted_model([ai_message(quiz_payload(examples))])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert result.success
        assert result.quiz.total_questions == 2
        assert result.quiz.difficulty.value == "beginner"
        assert result.quality.overall_score >= 70
        assert not result.quality.is_passing
        assert result.needs_review
        assert result.diagnostics.attempt_count == 1

    def test_flagged_truncation_retries_with_more_tokens(
        self, test_settings, good_quiz_payload, scripted_model
    ):
        """Test a max_tokens stop is retried with a larger ceiling and a strict prompt."""
        request = {"topic": "Photosynthesis", "subject": "Science", "question_count": 5, "difficulty": "beginner"}
        truncated = cut_inside_question(quiz_payload(FIVE_QUESTIONS), 3)
        complete = quiz_payload(FIVE_QUESTIONS)
        model, adapter = scripted_model(
            [ai_message(truncated, stop_reason="max_tokens"), ai_message(complete)]
        )
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(request)

        assert result.success
        assert result.quiz.total_questions == 5
        first, second = result.diagnostics.attempts
        assert first.failure_kind == FailureKind.TRUNCATED
        assert first.outcome == AttemptOutcome.RETRY
        assert first.finish_reason == "max_tokens"
        assert second.strict
        assert model.calls[1]["max_tokens"] == 12288
        assert model.calls[1]["temperature"] == 0.5
        retry_prompt = model.calls[1]["messages"][1].content
        assert "PREVIOUS ATTEMPT FAILED: Output was cut off at the 8192 token limit" in retry_prompt

    def test_unflagged_truncation_keeps_complete_questions(
        self, test_settings, photosynthesis_request, scripted_model
    ):
        """Test cut-off text without a max_tokens stop is repaired and accepted."""
        text = cut_inside_question(quiz_payload([PHOTOSYNTHESIS_MC, PHOTOSYNTHESIS_TF, PHOTOSYNTHESIS_MC]), 3)
        _, adapter = scripted_model([ai_message(text)])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert result.success
        assert result.quiz.total_questions == 2
        assert any("dropped incomplete trailing question" in w for w in result.diagnostics.warnings)

    def test_invalid_question_then_success(self, test_settings, photosynthesis_request, good_quiz_payload, scripted_model):
        """Test one invalid question rejects the attempt and the reason reaches the retry prompt."""
        bad = quiz_payload([PHOTOSYNTHESIS_MC, dict(PHOTOSYNTHESIS_TF, correct_answer=3)])
        model, adapter = scripted_model([ai_message(bad), ai_message(good_quiz_payload)])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert result.success
        assert result.diagnostics.attempts[0].failure_kind == FailureKind.INVALID_QUESTION
        assert "PREVIOUS ATTEMPT FAILED: Question 2:" in model.calls[1]["messages"][1].content

    def test_exhaustion_returns_best_quiz(self, test_settings, photosynthesis_request, scripted_model):
        """Test low quality on every attempt ends in failure with the best quiz kept."""
        weak = quiz_payload([WEAK_MC])
        model, adapter = scripted_model([ai_message(weak), ai_message(weak), ai_message(weak)])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert not result.success
        assert result.error.startswith("Failed to generate valid quiz after 3 attempts.")
        assert result.error.endswith("Best confidence: 68%")
        assert "below the acceptance threshold 70" in result.error
        assert result.quiz is not None
        assert result.needs_review
        assert [a.outcome for a in result.diagnostics.attempts] == [
            AttemptOutcome.RETRY,
            AttemptOutcome.RETRY,
            AttemptOutcome.EXHAUSTED,
        ]
        assert [call["max_tokens"] for call in model.calls] == [8192, 12288, 16384]
        assert [call["temperature"] for call in model.calls] == [0.7, 0.5, 0.3]

    def test_provider_errors_only(self, test_settings, photosynthesis_request, scripted_model):
        """Test failure without any validated quiz."""
        _, adapter = scripted_model([RuntimeError("throttled")] * 3)
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert not result.success
        assert result.quiz is None
        assert not result.needs_review
        assert result.error.endswith("Best confidence: 0%")
        assert result.diagnostics.last_failure_kind == FailureKind.PROVIDER_ERROR

    def test_quiz_array_shape_titled_from_topic(self, test_settings, photosynthesis_request, scripted_model):
        """Test the quiz-array shape gets its title from the topic."""
        _, adapter = scripted_model([ai_message({"quiz": [PHOTOSYNTHESIS_TF]})])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync(photosynthesis_request)

        assert result.success
        assert result.quiz.title == "Photosynthesis"
        assert result.quiz.category == "Science"
        assert any("Question count mismatch: expected 2, got 1" in w for w in result.diagnostics.warnings)

    def test_invalid_request_does_not_raise(self, test_settings, scripted_model):
        """Test an invalid request dict becomes a failure result."""
        model, adapter = scripted_model([])
        generator = QuizGenerator(settings=test_settings, adapter=adapter)

        result = generator.generate_sync({"topic": "Photosynthesis", "subject": "Science", "question_count": 0})

        assert not result.success
        assert result.error.startswith("Invalid generation request:")
        assert model.calls == []
