"""Main entry point for the quizgen CLI."""

from quizgen.cli.app import app


def main():
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    main()
