"""Tests for graph state and routing."""

from quizgen.graph.state import create_initial_state
from quizgen.graph.workflow import (
    GenerationPipeline,
    recursion_limit_for,
    route_after_attempt,
    route_after_invoke,
    route_after_parse,
)
from quizgen.models.generation import FailureKind


class TestGenerationState:
    """Test GenerationState creation."""

    def test_create_initial_state(self, photosynthesis_request, test_settings):
        """Test creating initial state."""
        state = create_initial_state(photosynthesis_request, test_settings)

        assert state["request"] == photosynthesis_request
        assert state["max_attempts"] == 3
        assert state["attempt"] == 0
        assert state["attempts"] == []
        assert state["warnings"] == []
        assert state["best_quiz"] is None
        assert state["result"] is None
        assert state["timeout"] is None

    def test_timeout_override(self, photosynthesis_request, test_settings):
        """Test a per-request timeout."""
        state = create_initial_state(photosynthesis_request, test_settings, timeout=5.0)

        assert state["timeout"] == 5.0


class TestRouting:
    """Test the conditional edges."""

    def test_after_invoke(self):
        """Test failed calls skip parsing."""
        assert route_after_invoke({"failure_kind": None}) == "parse"
        assert route_after_invoke({"failure_kind": FailureKind.TRUNCATED}) == "record"

    def test_after_parse(self):
        """Test invalid quizzes skip scoring."""
        assert route_after_parse({}) == "score"
        assert route_after_parse({"failure_kind": FailureKind.INVALID_QUESTION}) == "record"

    def test_after_attempt(self):
        """Test retry, finish, and give-up decisions."""
        assert route_after_attempt({"failure_kind": None, "attempt": 1, "max_attempts": 3}) == "finish"
        assert route_after_attempt({"failure_kind": FailureKind.TIMEOUT, "attempt": 2, "max_attempts": 3}) == "retry"
        assert (
            route_after_attempt({"failure_kind": FailureKind.LOW_QUALITY, "attempt": 3, "max_attempts": 3})
            == "exhausted"
        )

    def test_recursion_limit_covers_attempts(self):
        """Test the step budget grows with the attempt budget."""
        assert recursion_limit_for(1) == 10
        assert recursion_limit_for(3) == 22


class TestBackoff:
    """Test retry backoff."""

    def test_backoff_doubles(self, test_settings, scripted_model):
        """Test no delay before the first attempt, then doubling delays."""
        _, adapter = scripted_model([])
        settings = test_settings.model_copy(update={"retry_delay_seconds": 1.5})
        pipeline = GenerationPipeline(settings, adapter)

        assert pipeline.backoff_delay(1) == 0.0
        assert pipeline.backoff_delay(2) == 1.5
        assert pipeline.backoff_delay(3) == 3.0
        assert pipeline.backoff_delay(4) == 6.0
