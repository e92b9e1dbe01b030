"""Pydantic models for quiz requests and the canonical quiz structure."""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)


class Difficulty(str, Enum):
    """Quiz difficulty levels."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class QuestionType(str, Enum):
    """Supported question types."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    ESSAY = "essay"
    MATCHING = "matching"
    ORDERING = "ordering"


TRUE_FALSE_OPTIONS = ["True", "False"]


class GenerationRequest(BaseModel):
    """A structured request for one generated quiz."""

    topic: str = Field(..., min_length=1, description="Quiz topic")
    subject: str = Field(..., min_length=1, description="Subject the topic belongs to")
    question_count: int = Field(
        ...,
        ge=1,
        le=25,
        description="Exact number of questions to generate",
        validation_alias=AliasChoices("question_count", "questionCount"),
    )
    difficulty: Difficulty = Field(
        default=Difficulty.INTERMEDIATE,
        description="Difficulty label for the whole quiz",
    )
    question_types: list[QuestionType] = Field(
        default_factory=lambda: [QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE],
        min_length=1,
        description="Question types the model may use",
        validation_alias=AliasChoices("question_types", "questionTypes"),
    )
    language: str = Field(default="english", min_length=1, description="Language of the question text")
    explanation_language: str = Field(
        default="english",
        min_length=1,
        description="Language of the explanations",
        validation_alias=AliasChoices("explanation_language", "explanationLanguage"),
    )
    custom_prompt: str | None = Field(
        default=None,
        description="Extra instructions placed ahead of the generated content prompt",
        validation_alias=AliasChoices("custom_prompt", "customPrompt"),
    )

    @model_validator(mode="before")
    @classmethod
    def default_explanation_language(cls, data: Any) -> Any:
        """Explanations follow the question language unless told otherwise."""
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("explanation_language") and not data.get("explanationLanguage"):
                data["explanation_language"] = data.get("language") or "english"
        return data

    @field_validator("question_types")
    @classmethod
    def dedupe_question_types(cls, v: list[QuestionType]) -> list[QuestionType]:
        """Drop repeated types while keeping the caller's order."""
        seen: list[QuestionType] = []
        for question_type in v:
            if question_type not in seen:
                seen.append(question_type)
        return seen

    @field_validator("custom_prompt")
    @classmethod
    def blank_custom_prompt_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def type_values(self) -> list[str]:
        """Allowed question types as plain strings."""
        return [question_type.value for question_type in self.question_types]

    @property
    def default_duration(self) -> int:
        """Estimated duration in minutes."""
        return max(self.question_count * 2, 15)

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {
                "topic": "Photosynthesis",
                "subject": "Science",
                "question_count": 2,
                "difficulty": "beginner",
                "question_types": ["multiple_choice", "true_false"],
                "language": "english",
                "explanation_language": "english",
            }
        },
    }


class MatchingPair(BaseModel):
    """One left/right pair of a matching question."""

    left: str = Field(..., min_length=1)
    right: str = Field(..., min_length=1)


class QuestionBase(BaseModel):
    """Fields shared by every question type."""

    question: str = Field(..., min_length=1, description="The question text")
    explanation: str = Field(default="", description="Why the answer is correct")
    points: int = Field(default=1, ge=1)
    order_index: int = Field(default=0, ge=0)
    difficulty_level: str | None = Field(default=None, description="Per-question difficulty hint")
    tags: list[str] = Field(default_factory=list)
    time_limit_seconds: int | None = Field(default=None, gt=0)


class MultipleChoiceQuestion(QuestionBase):
    question_type: Literal["multiple_choice"] = "multiple_choice"
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0)

    @model_validator(mode="after")
    def answer_in_range(self) -> "MultipleChoiceQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index one of the options")
        return self


class TrueFalseQuestion(QuestionBase):
    question_type: Literal["true_false"] = "true_false"
    options: list[str] = Field(default_factory=lambda: list(TRUE_FALSE_OPTIONS), min_length=2, max_length=2)
    correct_answer: Literal[0, 1]


class FillBlankQuestion(QuestionBase):
    question_type: Literal["fill_blank"] = "fill_blank"
    options: list[str] = Field(default_factory=list, max_length=0)
    correct_answer: Literal[0] = 0
    correct_answer_text: str = Field(..., min_length=1)


class EssayQuestion(QuestionBase):
    question_type: Literal["essay"] = "essay"
    options: list[str] = Field(default_factory=list, max_length=0)
    correct_answer: Literal[0] = 0
    correct_answer_text: str = Field(..., min_length=1, description="Sample answer or marking points")


class MatchingQuestion(QuestionBase):
    question_type: Literal["matching"] = "matching"
    options: list[MatchingPair] = Field(..., min_length=1)
    correct_answer: list[int]


class OrderingQuestion(QuestionBase):
    question_type: Literal["ordering"] = "ordering"
    options: list[str] = Field(..., min_length=2)
    correct_answer: list[int]

    @model_validator(mode="after")
    def indices_in_range(self) -> "OrderingQuestion":
        if any(index < 0 or index >= len(self.options) for index in self.correct_answer):
            raise ValueError("correct_answer indices must point at options")
        return self


CanonicalQuestion = Annotated[
    Union[
        MultipleChoiceQuestion,
        TrueFalseQuestion,
        FillBlankQuestion,
        EssayQuestion,
        MatchingQuestion,
        OrderingQuestion,
    ],
    Field(discriminator="question_type"),
]

canonical_question_adapter: TypeAdapter[CanonicalQuestion] = TypeAdapter(CanonicalQuestion)


class CanonicalQuiz(BaseModel):
    """The single normalized representation of a generated quiz."""

    title: str = Field(..., min_length=1, description="Quiz title")
    description: str = Field(default="", description="Quiz description")
    category: str = Field(..., min_length=1, description="Quiz category, usually the subject")
    difficulty: Difficulty
    duration_minutes: int = Field(default=15, ge=1)
    passing_score: int = Field(default=70, ge=0, le=100)
    questions: list[CanonicalQuestion] = Field(default_factory=list)

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    def get_questions_by_type(self, question_type: QuestionType | str) -> list[Any]:
        """Get all questions of one type."""
        value = question_type.value if isinstance(question_type, QuestionType) else question_type
        return [q for q in self.questions if q.question_type == value]

    def question_type_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for question in self.questions:
            counts[question.question_type] = counts.get(question.question_type, 0) + 1
        return counts

    model_config = {
        "json_schema_extra": {
            "example": {
                "title": "Photosynthesis",
                "description": "A beginner level quiz about Photosynthesis",
                "category": "Science",
                "difficulty": "beginner",
                "duration_minutes": 15,
                "questions": [
                    {
                        "question": "The sun is a star.",
                        "question_type": "true_false",
                        "options": ["True", "False"],
                        "correct_answer": 0,
                        "explanation": "The sun is classified as a yellow dwarf star.",
                    }
                ],
            }
        }
    }
