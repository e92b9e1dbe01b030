"""Export functionality for quiz documents."""

from .docx_generator import export_quiz_with_separate_answers, export_to_docx, format_answer, generate_answer_key

__all__ = ["export_to_docx", "generate_answer_key", "export_quiz_with_separate_answers", "format_answer"]
