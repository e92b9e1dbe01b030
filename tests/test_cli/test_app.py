"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from quizgen.cli import app as cli
from quizgen.config.settings import Settings
from quizgen.generator import QuizGenerator
from tests.helpers import WEAK_MC, ai_message, quiz_payload

runner = CliRunner()


@pytest.fixture
def patched_cli(monkeypatch, test_settings, scripted_model):
    """Point the CLI at test settings and a scripted model."""

    def install(script):
        model, adapter = scripted_model(script)
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        monkeypatch.setattr(cli, "build_generator", lambda settings: QuizGenerator(settings, adapter=adapter))
        return model

    return install


class TestGenerateCommand:
    """Test the generate command."""

    def test_generate_writes_exports(self, patched_cli, good_quiz_payload, tmp_path):
        """Test a successful run writes JSON and both DOCX files."""
        patched_cli([ai_message(good_quiz_payload)])

        result = runner.invoke(
            cli.app,
            [
                "generate",
                "-t", "Photosynthesis",
                "-s", "Science",
                "-q", "2",
                "-d", "beginner",
                "--type", "multiple_choice",
                "--type", "true_false",
                "-o", "photosynthesis",
                "--output-dir", str(tmp_path),
            ],
        )

        assert result.exit_code == 0, result.output
        json_files = list(tmp_path.glob("photosynthesis_*.json"))
        assert len(json_files) == 1
        saved = json.loads(json_files[0].read_text(encoding="utf-8"))
        assert saved["difficulty"] == "beginner"
        assert len(saved["questions"]) == 2
        assert len(list(tmp_path.glob("photosynthesis_questions_*.docx"))) == 1
        assert len(list(tmp_path.glob("photosynthesis_answers_*.docx"))) == 1

    def test_generate_failure_saves_review_copy(self, patched_cli, tmp_path):
        """Test exhaustion exits non-zero and keeps the best quiz for review."""
        weak = ai_message(quiz_payload([WEAK_MC]))
        patched_cli([weak, weak, weak])

        result = runner.invoke(
            cli.app,
            [
                "generate",
                "-t", "Photosynthesis",
                "-s", "Science",
                "-q", "1",
                "-o", "weak",
                "--no-docx",
                "--output-dir", str(tmp_path),
            ],
        )

        assert result.exit_code == 1
        assert "Failed to generate valid quiz" in result.output
        assert len(list(tmp_path.glob("weak_review_*.json"))) == 1

    def test_missing_anthropic_key(self, monkeypatch, tmp_path):
        """Test the anthropic provider needs an API key."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        settings = Settings(MODEL_PROVIDER="anthropic")
        monkeypatch.setattr(cli, "get_settings", lambda: settings)

        result = runner.invoke(cli.app, ["generate", "-t", "Cells", "-s", "Biology", "--output-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY" in result.output


class TestPreviewPromptCommand:
    """Test the preview-prompt command."""

    def test_preview(self, monkeypatch, test_settings):
        """Test both prompts are printed."""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)

        result = runner.invoke(
            cli.app,
            ["preview-prompt", "-t", "Photosynthesis", "-s", "Science", "-q", "3", "--type", "essay"],
        )

        assert result.exit_code == 0, result.output
        assert "System Prompt" in result.output
        assert "Content Prompt" in result.output
        assert "essay" in result.output


class TestScoreCommand:
    """Test the score command."""

    def test_score_good_quiz(self, monkeypatch, test_settings, good_quiz_payload, tmp_path):
        """Test scoring a saved quiz file."""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        quiz_file = tmp_path / "photosynthesis.json"
        quiz_file.write_text(json.dumps(good_quiz_payload), encoding="utf-8")

        result = runner.invoke(cli.app, ["score", str(quiz_file), "--topic", "Photosynthesis"])

        assert result.exit_code == 0, result.output
        assert "PASS" in result.output
        assert "confidence 100%" in result.output

    def test_score_unparseable_file(self, monkeypatch, test_settings, tmp_path):
        """Test a file without JSON."""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        quiz_file = tmp_path / "notes.json"
        quiz_file.write_text("just some notes", encoding="utf-8")

        result = runner.invoke(cli.app, ["score", str(quiz_file)])

        assert result.exit_code == 1
        assert "Could not parse" in result.output

    def test_score_unrecognized_quiz_value(self, monkeypatch, test_settings, tmp_path):
        """Test a quiz value that is neither an object nor a list."""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
        quiz_file = tmp_path / "broken.json"
        quiz_file.write_text(json.dumps({"quiz": "nope"}), encoding="utf-8")

        result = runner.invoke(cli.app, ["score", str(quiz_file)])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Unrecognized quiz structure" in result.output


class TestInfoCommand:
    """Test the info command."""

    def test_info(self, monkeypatch, test_settings):
        """Test the info panel lists the pipeline."""
        monkeypatch.setattr(cli, "get_settings", lambda: test_settings)

        result = runner.invoke(cli.app, ["info"])

        assert result.exit_code == 0
        assert "Quality Matrix" in result.output
        assert "multiple_choice" in result.output
