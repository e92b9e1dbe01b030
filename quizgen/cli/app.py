"""Typer CLI application for quiz generation."""

from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from quizgen import __version__
from quizgen.config import Settings, configure_logging, get_settings
from quizgen.errors import QuizGenerationError, QuizStructureError
from quizgen.export.docx_generator import (
    ensure_output_directory,
    export_quiz_with_separate_answers,
    export_to_docx,
    generate_timestamped_filename,
)
from quizgen.generator import QuizGenerator
from quizgen.models.generation import GenerationResult
from quizgen.models.quality import QuizQualityReport
from quizgen.models.quiz import CanonicalQuiz, Difficulty, GenerationRequest, QuestionType
from quizgen.pipeline.content_review import review_quiz_content
from quizgen.pipeline.json_recovery import recover_json
from quizgen.pipeline.normalizer import QUESTION_TYPE_ALIASES, ensure_required_fields, normalize_quiz_structure
from quizgen.pipeline.prompts import PromptBuilder
from quizgen.pipeline.quality import QualityMatrix
from quizgen.pipeline.validator import KNOWN_TYPES, build_canonical_quiz

app = typer.Typer(
    name="quizgen",
    help="AI quiz generator with JSON recovery, validation, and quality scoring",
    add_completion=False,
)

console = Console()


def build_generator(settings: Settings) -> QuizGenerator:
    """Create the generator used by the ``generate`` command."""
    return QuizGenerator(settings)


def build_request(
    topic: str,
    subject: str,
    questions: int,
    difficulty: Difficulty,
    question_types: Optional[List[QuestionType]],
    language: str,
    explanation_language: Optional[str],
    custom_prompt: Optional[str],
) -> GenerationRequest:
    data: dict[str, Any] = {
        "topic": topic,
        "subject": subject,
        "question_count": questions,
        "difficulty": difficulty,
        "language": language,
        "explanation_language": explanation_language,
        "custom_prompt": custom_prompt,
    }
    if question_types:
        data["question_types"] = question_types
    return GenerationRequest.model_validate(data)


@app.command()
def generate(
    topic: str = typer.Option(..., "--topic", "-t", help="Quiz topic"),
    subject: str = typer.Option(..., "--subject", "-s", help="Subject the topic belongs to"),
    questions: int = typer.Option(5, "--questions", "-q", help="Number of questions", min=1, max=25),
    difficulty: Difficulty = typer.Option(
        Difficulty.INTERMEDIATE,
        "--difficulty",
        "-d",
        help="Quiz difficulty",
        case_sensitive=False,
    ),
    question_types: Optional[List[QuestionType]] = typer.Option(
        None,
        "--type",
        help="Allowed question type (can specify multiple times: --type multiple_choice --type essay)",
        case_sensitive=False,
    ),
    language: str = typer.Option("english", "--language", "-l", help="Language of the questions"),
    explanation_language: Optional[str] = typer.Option(
        None,
        "--explanation-language",
        help="Language of the explanations (defaults to --language)",
    ),
    custom_prompt: Optional[str] = typer.Option(
        None,
        "--prompt",
        help="Extra instructions placed ahead of the generated prompt",
    ),
    attempts: Optional[int] = typer.Option(
        None,
        "--attempts",
        help="Maximum generation attempts (overrides MAX_ATTEMPTS)",
        min=1,
        max=10,
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file name (without extension)",
    ),
    output_dir: str = typer.Option("output", "--output-dir", help="Directory for exported files"),
    save_json: bool = typer.Option(True, "--json/--no-json", help="Write the quiz as JSON"),
    save_docx: bool = typer.Option(True, "--docx/--no-docx", help="Write the quiz as DOCX"),
    include_answers: bool = typer.Option(
        False,
        "--with-answers/--separate-answers",
        help="Include answers in the quiz document instead of a separate answer key",
    ),
) -> None:
    """
    Generate a quiz with the configured chat model.

    Example:
        quizgen generate -t Photosynthesis -s Science -q 5 -d beginner --type multiple_choice --type true_false
    """
    settings = get_settings()
    if attempts is not None:
        settings = settings.model_copy(update={"max_attempts": attempts})

    if settings.model_provider == "anthropic" and not settings.anthropic_api_key:
        console.print("[red]Error:[/red] ANTHROPIC_API_KEY environment variable not set.", style="bold")
        console.print("\nPlease set your API key:\n  export ANTHROPIC_API_KEY='your-key-here'")
        raise typer.Exit(code=1)

    try:
        request = build_request(
            topic, subject, questions, difficulty, question_types, language, explanation_language, custom_prompt
        )
    except ValueError as e:
        console.print(f"[red]Error:[/red] Invalid request: {e}", style="bold")
        raise typer.Exit(code=1)

    display_config(request, settings)

    generator = build_generator(settings)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Generating quiz...", total=None)
        result = generator.generate_sync(request)
        progress.update(task, description="[green]Generation finished")

    display_attempts(result)
    base_name = output or settings.default_output_path

    if not result.success:
        console.print(f"\n[red]Error:[/red] {result.error}", style="bold")
        if result.quiz is not None and save_json:
            review_path = write_quiz_json(result.quiz, f"{base_name}_review", output_dir)
            console.print(f"  Best attempt saved for manual review: {review_path}")
        raise typer.Exit(code=1)

    display_quiz_summary(result.quiz, result)

    try:
        if save_json:
            json_path = write_quiz_json(result.quiz, base_name, output_dir)
            console.print(f"\n[green]✓[/green] JSON: {json_path}")
        if save_docx:
            if include_answers:
                docx_path = export_to_docx(
                    result.quiz, f"{base_name}.docx", include_answers=True, output_dir=output_dir
                )
                console.print(f"[green]✓[/green] DOCX: {docx_path}")
            else:
                questions_file, answers_file = export_quiz_with_separate_answers(
                    result.quiz, base_name, output_dir=output_dir
                )
                console.print(f"[green]✓[/green] Questions: {questions_file}")
                console.print(f"[green]✓[/green] Answers:   {answers_file}")
    except OSError as e:
        console.print(f"\n[red]Error during export:[/red] {e}", style="bold")
        raise typer.Exit(code=1)

    console.print("\n[green bold]Quiz generation complete![/green bold]")


@app.command("preview-prompt")
def preview_prompt(
    topic: str = typer.Option(..., "--topic", "-t", help="Quiz topic"),
    subject: str = typer.Option(..., "--subject", "-s", help="Subject the topic belongs to"),
    questions: int = typer.Option(5, "--questions", "-q", help="Number of questions", min=1, max=25),
    difficulty: Difficulty = typer.Option(
        Difficulty.INTERMEDIATE,
        "--difficulty",
        "-d",
        help="Quiz difficulty",
        case_sensitive=False,
    ),
    question_types: Optional[List[QuestionType]] = typer.Option(
        None, "--type", help="Allowed question type (repeatable)", case_sensitive=False
    ),
    language: str = typer.Option("english", "--language", "-l", help="Language of the questions"),
    explanation_language: Optional[str] = typer.Option(
        None, "--explanation-language", help="Language of the explanations"
    ),
    custom_prompt: Optional[str] = typer.Option(None, "--prompt", help="Extra instructions"),
    strict: bool = typer.Option(False, "--strict", help="Show the stricter prompt used on retries"),
) -> None:
    """Print the prompts a request would send, without calling the model."""
    try:
        request = build_request(
            topic, subject, questions, difficulty, question_types, language, explanation_language, custom_prompt
        )
    except ValueError as e:
        console.print(f"[red]Error:[/red] Invalid request: {e}", style="bold")
        raise typer.Exit(code=1)

    builder = PromptBuilder()
    prompts = builder.build_prompts(request, strict=strict) if strict else builder.preview_prompts(request)
    console.print(Panel(prompts.system_prompt, title="System Prompt", border_style="cyan"))
    console.print(Panel(prompts.prompt, title="Content Prompt", border_style="green"))


@app.command()
def score(
    quiz_file: Path = typer.Argument(..., help="Quiz JSON file to score", exists=True, dir_okay=False),
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Topic (defaults to the quiz title)"),
    subject: Optional[str] = typer.Option(None, "--subject", "-s", help="Subject (defaults to the quiz category)"),
) -> None:
    """Review and score an existing quiz JSON file."""
    content = quiz_file.read_text(encoding="utf-8")
    recovered = recover_json(content)
    if not recovered.ok:
        console.print(f"[red]Error:[/red] Could not parse {quiz_file}: {recovered.error}", style="bold")
        raise typer.Exit(code=1)

    try:
        request = request_from_quiz_data(recovered.data, quiz_file.stem, topic, subject)
        normalized = normalize_quiz_structure(recovered.data, request)
        if normalized is None:
            raise QuizStructureError("Unrecognized quiz structure")
        ensure_required_fields(normalized, request)
        quiz = build_canonical_quiz(normalized, request)
    except (QuizGenerationError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}", style="bold")
        raise typer.Exit(code=1)

    review = review_quiz_content(content, request)
    report = QualityMatrix(get_settings().quality_settings()).evaluate_quiz(quiz, request)

    display_quality_report(quiz, report)

    status = "[green]valid[/green]" if review.is_valid else "[yellow]needs fixes[/yellow]"
    console.print(f"\nContent review: {status} (confidence {review.confidence}%)")
    for issue in review.issues:
        console.print(f"  [{issue.severity.value}] {issue.message}")

    verdict = "[green]PASS[/green]" if report.is_passing else "[red]FAIL[/red]"
    console.print(f"Quality Matrix: {verdict} ({report.overall_score}/100)")


@app.command()
def info() -> None:
    """Display information about the quiz generator."""
    settings = get_settings()
    info_text = f"""
[bold cyan]AI Quiz Generator[/bold cyan]
Version: {__version__}

[bold]Pipeline:[/bold]
  • Prompt Builder - Type-restricted prompts, stricter on retries
  • Model Adapter - Token ceiling, temperature, truncation detection
  • JSON Recovery - Fence stripping, truncation and syntax repair
  • Normalizer & Validator - One canonical quiz, per-type answer rules
  • Quality Matrix - Six weighted checks, three critical
  • Retry Orchestrator - Backoff, escalating token limits

[bold]Question types:[/bold] {", ".join(t.value for t in QuestionType)}

[bold]Model:[/bold] {settings.model_name} ({settings.model_provider})
[bold]Attempts:[/bold] {settings.max_attempts}, token limits {settings.token_limits}
[bold]Thresholds:[/bold] pass {settings.pass_threshold}, accept {settings.acceptance_threshold}
    """
    console.print(Panel(info_text, title="quizgen Info", border_style="cyan"))


def request_from_quiz_data(
    data: Any,
    fallback_title: str,
    topic: Optional[str] = None,
    subject: Optional[str] = None,
) -> GenerationRequest:
    """Infer the request a quiz file answers, for scoring it."""
    quiz = data.get("quiz", data) if isinstance(data, dict) else data
    if not isinstance(quiz, (dict, list)):
        raise QuizStructureError("Unrecognized quiz structure")
    questions = quiz if isinstance(quiz, list) else quiz.get("questions")
    if not isinstance(questions, list):
        questions = []
    meta = quiz if isinstance(quiz, dict) else {}

    found_types = []
    for question in questions:
        if isinstance(question, dict):
            value = str(question.get("question_type") or question.get("type") or "").lower()
            value = QUESTION_TYPE_ALIASES.get(value, value)
            if value in KNOWN_TYPES and value not in found_types:
                found_types.append(value)

    difficulty = meta.get("difficulty")
    if difficulty not in {d.value for d in Difficulty}:
        difficulty = Difficulty.INTERMEDIATE.value

    return GenerationRequest(
        topic=topic or meta.get("title") or meta.get("quiz_title") or fallback_title,
        subject=subject or meta.get("category") or "General",
        question_count=min(max(len(questions), 1), 25),
        difficulty=difficulty,
        question_types=found_types or [t.value for t in QuestionType],
    )


def write_quiz_json(quiz: CanonicalQuiz, base_name: str, output_dir: str = "output") -> str:
    """Write the canonical quiz as JSON next to the other exports."""
    path = ensure_output_directory(output_dir) / generate_timestamped_filename(base_name, "json")
    path.write_text(quiz.model_dump_json(indent=2), encoding="utf-8")
    return str(path)


def display_config(request: GenerationRequest, settings: Settings) -> None:
    """Display the request before generation."""
    table = Table(title="Quiz Configuration", show_header=False, border_style="cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Topic", request.topic)
    table.add_row("Subject", request.subject)
    table.add_row("Questions", str(request.question_count))
    table.add_row("Difficulty", request.difficulty.value.capitalize())
    table.add_row("Types", ", ".join(request.type_values))
    table.add_row("Language", f"{request.language} (explanations: {request.explanation_language})")
    table.add_row("Model", settings.model_name)
    table.add_row("Max attempts", str(settings.max_attempts))

    console.print()
    console.print(table)


def display_attempts(result: GenerationResult) -> None:
    """Display one row per generation attempt."""
    table = Table(title="Attempts", border_style="cyan")
    table.add_column("#", style="cyan")
    table.add_column("Tokens", style="white")
    table.add_column("Temp", style="white")
    table.add_column("Outcome", style="white")
    table.add_column("Score", style="white")
    table.add_column("Reason", style="white")

    for record in result.diagnostics.attempts:
        outcome = record.outcome.value
        if outcome == "success":
            outcome = f"[green]{outcome}[/green]"
        elif outcome == "exhausted":
            outcome = f"[red]{outcome}[/red]"
        else:
            outcome = f"[yellow]{outcome}[/yellow]"
        table.add_row(
            str(record.attempt),
            str(record.max_tokens),
            f"{record.temperature:.2f}",
            outcome,
            "-" if record.score is None else str(record.score),
            record.reason or "",
        )

    console.print()
    console.print(table)


def display_quiz_summary(quiz: CanonicalQuiz, result: GenerationResult) -> None:
    """Display a summary of the generated quiz."""
    console.print("\n[bold green]Quiz Generated Successfully![/bold green]")

    table = Table(title="Quiz Summary", border_style="green")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Title", quiz.title)
    table.add_row("Total Questions", str(quiz.total_questions))
    table.add_row("Types", ", ".join(f"{k} ({v})" for k, v in quiz.question_type_counts().items()))

    if result.quality is not None:
        table.add_row("Quality Score", format_score(result.quality.overall_score))
    if result.needs_review:
        table.add_row("Review", "[yellow]Manual review recommended[/yellow]")
    for warning in result.diagnostics.warnings:
        table.add_row("Warning", warning)

    console.print()
    console.print(table)


def display_quality_report(quiz: CanonicalQuiz, report: QuizQualityReport) -> None:
    """Display per-question Quality Matrix scores."""
    table = Table(title=f"Quality Matrix: {quiz.title}", border_style="cyan")
    table.add_column("Q#", style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Score", style="white")
    table.add_column("Failed checks", style="white")
    table.add_column("Review", style="white")

    for result in report.results:
        question = quiz.questions[result.question_index]
        table.add_row(
            str(result.question_index + 1),
            question.question_type,
            format_score(result.overall_score),
            ", ".join(result.failed_checks) or "-",
            "yes" if result.requires_manual_review else "",
        )

    console.print()
    console.print(table)


def format_score(score: int) -> str:
    if score >= 80:
        return f"[green]{score}[/green]"
    if score >= 70:
        return f"[yellow]{score}[/yellow]"
    return f"[red]{score}[/red]"


@app.callback()
def callback(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to LOG_LEVEL)"),
) -> None:
    """
    quizgen - Generate validated, quality-scored quizzes with AI.
    """
    configure_logging(log_level or get_settings().log_level)


if __name__ == "__main__":
    app()
