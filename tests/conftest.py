"""Shared test fixtures and configuration for pytest."""

from typing import Any

import pytest

from quizgen.config.settings import Settings
from quizgen.models.quiz import (
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
)
from quizgen.pipeline.model_adapter import ModelAdapter
from tests.helpers import PHOTOSYNTHESIS_MC, PHOTOSYNTHESIS_TF, ScriptedChatModel, quiz_payload


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no backoff delay."""
    return Settings(RETRY_DELAY=0.0, MAX_ATTEMPTS=3, MODEL_PROVIDER="bedrock")


@pytest.fixture
def photosynthesis_request() -> GenerationRequest:
    """The two-question beginner request used across the pipeline tests."""
    return GenerationRequest(
        topic="Photosynthesis",
        subject="Science",
        question_count=2,
        difficulty=Difficulty.BEGINNER,
        question_types=[QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE],
    )


@pytest.fixture
def all_types_request() -> GenerationRequest:
    """A request allowing every question type."""
    return GenerationRequest(
        topic="Solar System",
        subject="Astronomy",
        question_count=6,
        difficulty=Difficulty.INTERMEDIATE,
        question_types=list(QuestionType),
    )


@pytest.fixture
def good_quiz_payload() -> dict[str, Any]:
    return quiz_payload([PHOTOSYNTHESIS_MC, PHOTOSYNTHESIS_TF])


@pytest.fixture
def mc_question() -> MultipleChoiceQuestion:
    return MultipleChoiceQuestion(**PHOTOSYNTHESIS_MC)


@pytest.fixture
def tf_question() -> TrueFalseQuestion:
    return TrueFalseQuestion(**PHOTOSYNTHESIS_TF)


@pytest.fixture
def sample_quiz() -> CanonicalQuiz:
    """A canonical quiz with one question of every type."""
    return CanonicalQuiz(
        title="Solar System",
        description="An intermediate level quiz about Solar System",
        category="Astronomy",
        difficulty=Difficulty.INTERMEDIATE,
        duration_minutes=15,
        questions=[
            MultipleChoiceQuestion(
                question="Which planet is known as the Red Planet?",
                options=["Venus", "Mars", "Jupiter", "Mercury"],
                correct_answer=1,
                explanation="Mars looks red because its surface is covered in iron oxide.",
            ),
            TrueFalseQuestion(
                question="The sun is a star.",
                correct_answer=0,
                explanation="The sun is classified as a yellow dwarf star.",
            ),
            FillBlankQuestion(
                question="The largest planet in the solar system is ____.",
                correct_answer_text="Jupiter",
                explanation="Jupiter is more than twice as massive as all other planets combined.",
            ),
            EssayQuestion(
                question="Explain why Pluto is no longer classified as a planet.",
                correct_answer_text="It has not cleared its orbital neighbourhood.",
            ),
            MatchingQuestion(
                question="Match each planet with its characteristic:",
                options=[
                    MatchingPair(left="Mars", right="Red planet"),
                    MatchingPair(left="Jupiter", right="Largest planet"),
                    MatchingPair(left="Saturn", right="Has rings"),
                ],
                correct_answer=[0, 1, 2],
                explanation="Each planet is paired with its best-known feature.",
            ),
            OrderingQuestion(
                question="Order these planets by distance from the sun:",
                options=["Earth", "Mercury", "Mars", "Venus"],
                correct_answer=[1, 3, 0, 2],
                explanation="Mercury, Venus, Earth, then Mars.",
            ),
        ],
    )


@pytest.fixture
def scripted_model():
    """Factory fixture: build a ScriptedChatModel and an adapter around it."""

    def build(script: list[Any], timeout_seconds: float = 5.0) -> tuple[ScriptedChatModel, ModelAdapter]:
        model = ScriptedChatModel(script)
        adapter = ModelAdapter(model.factory, timeout_seconds=timeout_seconds, model_name="scripted-model")
        return model, adapter

    return build
