"""Pipeline stages from prompt to quality score."""

from .content_review import review_quiz_content
from .json_recovery import RecoveredJSON, recover_json
from .model_adapter import ModelAdapter, create_model_factory
from .normalizer import ensure_required_fields, normalize_quiz_structure
from .prompts import PromptBuilder, PromptPair
from .quality import QualityMatrix
from .validator import build_canonical_quiz, validate_question, validate_questions

__all__ = [
    "PromptBuilder",
    "PromptPair",
    "ModelAdapter",
    "create_model_factory",
    "RecoveredJSON",
    "recover_json",
    "normalize_quiz_structure",
    "ensure_required_fields",
    "validate_question",
    "validate_questions",
    "build_canonical_quiz",
    "QualityMatrix",
    "review_quiz_content",
]
