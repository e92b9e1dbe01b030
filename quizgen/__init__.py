"""AI quiz generation with JSON recovery, validation, and quality scoring."""

from quizgen.generator import QuizGenerator
from quizgen.models import CanonicalQuiz, GenerationRequest, GenerationResult

__version__ = "0.1.0"

__all__ = ["QuizGenerator", "GenerationRequest", "GenerationResult", "CanonicalQuiz", "__version__"]
