"""DOCX document generator for quiz export."""

from datetime import datetime
from pathlib import Path
from typing import Any

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from quizgen.models.quiz import CanonicalQuiz

OPTION_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
TYPE_LABELS = {
    "multiple_choice": "Multiple choice",
    "true_false": "True / False",
    "fill_blank": "Fill in the blank",
    "essay": "Essay",
    "matching": "Matching",
    "ordering": "Ordering",
}
CORRECT_COLOR = RGBColor(0, 128, 0)
HEADING_COLOR = RGBColor(0, 51, 102)
MUTED_COLOR = RGBColor(128, 128, 128)


def ensure_output_directory(output_dir: str = "output") -> Path:
    """
    Ensure the output directory exists.

    Args:
        output_dir: Directory path to create

    Returns:
        Path object for the output directory
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path


def generate_timestamped_filename(base_name: str, extension: str = "docx") -> str:
    """
    Generate a filename with timestamp.

    Args:
        base_name: Base name for the file
        extension: File extension (without dot)

    Returns:
        Filename with timestamp
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    # Clean the base name to remove any path components
    base_name = Path(base_name).name
    return f"{base_name}_{timestamp}.{extension}"


def format_answer(question: Any) -> str:
    """
    Render the correct answer of any question type as plain text.

    Args:
        question: A canonical question

    Returns:
        Human-readable answer
    """
    if question.question_type == "multiple_choice":
        index = question.correct_answer
        return f"{OPTION_LETTERS[index]} - {question.options[index]}"
    if question.question_type == "true_false":
        return question.options[question.correct_answer]
    if question.question_type in ("fill_blank", "essay"):
        return question.correct_answer_text
    if question.question_type == "matching":
        pairs = [question.options[i] for i in question.correct_answer]
        return "; ".join(f"{pair.left} → {pair.right}" for pair in pairs)
    if question.question_type == "ordering":
        return " → ".join(question.options[i] for i in question.correct_answer)
    return ""


def export_to_docx(
    quiz: CanonicalQuiz,
    output_path: str,
    include_answers: bool = False,
    use_output_dir: bool = True,
    output_dir: str = "output",
) -> str:
    """
    Export quiz to a formatted DOCX file.

    Args:
        quiz: Canonical quiz to export
        output_path: Path where the DOCX file should be saved (can be relative or absolute)
        include_answers: If True, marks correct answers and adds explanations and an answer key
        use_output_dir: If True, saves to output directory with timestamp (default: True)
        output_dir: Directory to save files in (default: "output")

    Returns:
        Path to the created DOCX file
    """
    if use_output_dir:
        output_dir_path = ensure_output_directory(output_dir)
        output_path = str(output_dir_path / generate_timestamped_filename(Path(output_path).stem))

    doc = Document()
    setup_document_styles(doc)

    title = doc.add_heading(quiz.title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    if quiz.description:
        desc_para = doc.add_paragraph(quiz.description)
        desc_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
        desc_para.runs[0].italic = True

    doc.add_paragraph()
    info_para = doc.add_paragraph()
    info_para.add_run(f"Category: {quiz.category}").bold = True
    info_para.add_run("  |  ")
    info_para.add_run(f"Difficulty: {quiz.difficulty.value.capitalize()}").bold = True
    info_para.add_run("  |  ")
    info_para.add_run(f"Questions: {quiz.total_questions}").bold = True
    info_para.add_run("  |  ")
    info_para.add_run(f"Duration: {quiz.duration_minutes} min").bold = True
    info_para.alignment = WD_ALIGN_PARAGRAPH.CENTER

    date_para = doc.add_paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    date_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    date_para.runs[0].font.size = Pt(9)
    date_para.runs[0].font.color.rgb = MUTED_COLOR

    doc.add_page_break()

    for number, question in enumerate(quiz.questions, 1):
        add_question_to_document(doc, question, number, include_answers)

    if include_answers:
        add_answer_key(doc, quiz)

    doc.save(output_path)

    return output_path


def setup_document_styles(doc: Document) -> None:
    """
    Set up document-wide styles.

    Args:
        doc: Document to configure
    """
    style = doc.styles["Normal"]
    font = style.font
    font.name = "Calibri"
    font.size = Pt(11)

    for section in doc.sections:
        section.top_margin = Inches(1)
        section.bottom_margin = Inches(1)
        section.left_margin = Inches(1)
        section.right_margin = Inches(1)


def _indented(doc: Document, text: str):
    para = doc.add_paragraph(text)
    para.paragraph_format.left_indent = Inches(0.5)
    return para


def _mark_correct(para) -> None:
    para.runs[0].bold = True
    para.runs[0].font.color.rgb = CORRECT_COLOR
    para.add_run(" ✓").font.color.rgb = CORRECT_COLOR


def add_question_to_document(doc: Document, question: Any, number: int, include_answers: bool = False) -> None:
    """
    Add one question, rendered for its type.

    Args:
        doc: Document to add to
        question: Canonical question
        number: 1-based question number
        include_answers: If True, marks answers and adds the explanation
    """
    q_para = doc.add_paragraph()
    q_run = q_para.add_run(f"Q{number}. ")
    q_run.bold = True
    q_run.font.size = Pt(12)
    q_para.add_run(question.question)

    type_para = doc.add_paragraph()
    type_run = type_para.add_run(f"  {TYPE_LABELS.get(question.question_type, question.question_type)}")
    type_run.font.size = Pt(9)
    type_run.italic = True
    type_run.font.color.rgb = MUTED_COLOR

    question_type = question.question_type
    if question_type in ("multiple_choice", "true_false"):
        for index, option in enumerate(question.options):
            opt_para = _indented(doc, f"{OPTION_LETTERS[index]}. {option}")
            if include_answers and index == question.correct_answer:
                _mark_correct(opt_para)
    elif question_type == "fill_blank":
        answer = question.correct_answer_text if include_answers else "____________________"
        ans_para = _indented(doc, f"Answer: {answer}")
        if include_answers:
            _mark_correct(ans_para)
    elif question_type == "essay":
        if include_answers:
            _indented(doc, f"Sample answer: {question.correct_answer_text}").runs[0].italic = True
        else:
            for _ in range(4):
                _indented(doc, "_" * 60)
    elif question_type == "matching":
        rights = sorted(pair.right for pair in question.options)
        for index, pair in enumerate(question.options, 1):
            _indented(doc, f"{index}. {pair.left}")
        for index, right in enumerate(rights):
            _indented(doc, f"{OPTION_LETTERS[index]}. {right}")
        if include_answers:
            _mark_correct(_indented(doc, f"Answer: {format_answer(question)}"))
    elif question_type == "ordering":
        for index, item in enumerate(question.options):
            _indented(doc, f"{OPTION_LETTERS[index]}. {item}")
        if include_answers:
            _mark_correct(_indented(doc, f"Correct order: {format_answer(question)}"))

    if include_answers and question.explanation:
        exp_para = _indented(doc, "")
        exp_run = exp_para.add_run(f"Explanation: {question.explanation}")
        exp_run.italic = True
        exp_run.font.size = Pt(10)
        exp_run.font.color.rgb = RGBColor(64, 64, 64)

    # Spacing between questions
    doc.add_paragraph()


def add_answer_key(doc: Document, quiz: CanonicalQuiz) -> None:
    """
    Add an answer key section at the end of the document.

    Args:
        doc: Document to add to
        quiz: Canonical quiz
    """
    doc.add_page_break()

    header = doc.add_heading("Answer Key", level=1)
    header.alignment = WD_ALIGN_PARAGRAPH.CENTER
    header.runs[0].font.color.rgb = HEADING_COLOR

    doc.add_paragraph()

    table = doc.add_table(rows=1, cols=3)
    table.style = "Light Grid Accent 1"

    header_cells = table.rows[0].cells
    header_cells[0].text = "Q#"
    header_cells[1].text = "Answer"
    header_cells[2].text = "Explanation"

    for cell in header_cells:
        for paragraph in cell.paragraphs:
            for run in paragraph.runs:
                run.bold = True

    for number, question in enumerate(quiz.questions, 1):
        row_cells = table.add_row().cells
        row_cells[0].text = str(number)
        row_cells[1].text = format_answer(question)
        row_cells[2].text = question.explanation or "N/A"

    doc.add_paragraph()


def generate_answer_key(quiz: CanonicalQuiz, output_path: str) -> str:
    """
    Generate a separate answer key document.

    Args:
        quiz: Canonical quiz
        output_path: Path where the answer key should be saved

    Returns:
        Path to the created answer key file
    """
    doc = Document()
    setup_document_styles(doc)

    title = doc.add_heading(f"{quiz.title} - Answer Key", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    doc.add_paragraph()

    add_answer_key(doc, quiz)

    doc.save(output_path)

    return output_path


def export_quiz_with_separate_answers(
    quiz: CanonicalQuiz, base_path: str, output_dir: str = "output"
) -> tuple[str, str]:
    """
    Export quiz with questions and answers in separate files.

    Args:
        quiz: Canonical quiz
        base_path: Base path for output files (without extension)
        output_dir: Directory to save files in (default: "output")

    Returns:
        Tuple of (questions_path, answers_path)
    """
    output_path = ensure_output_directory(output_dir)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base_name = Path(base_path).name

    questions_path = str(output_path / f"{base_name}_questions_{timestamp}.docx")
    answers_path = str(output_path / f"{base_name}_answers_{timestamp}.docx")

    # Paths are already resolved, so skip the output-dir handling
    export_to_docx(quiz, questions_path, include_answers=False, use_output_dir=False)
    generate_answer_key(quiz, answers_path)

    return questions_path, answers_path
