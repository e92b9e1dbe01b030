"""LangGraph workflow driving generation attempts until a quiz is accepted."""

import asyncio
import logging
import time
from typing import Any, Literal

from langgraph.graph import END, StateGraph

from quizgen.config.settings import Settings
from quizgen.errors import JSONRecoveryError, QuizGenerationError, QuizStructureError
from quizgen.graph.state import GenerationState
from quizgen.models.generation import (
    AttemptOutcome,
    AttemptRecord,
    FailureKind,
    GenerationDiagnostics,
    GenerationResult,
)
from quizgen.pipeline.content_review import review_quiz_content
from quizgen.pipeline.json_recovery import recover_json
from quizgen.pipeline.model_adapter import ModelAdapter
from quizgen.pipeline.normalizer import ensure_required_fields, normalize_quiz_structure
from quizgen.pipeline.prompts import PromptBuilder
from quizgen.pipeline.quality import QualityMatrix
from quizgen.pipeline.validator import build_canonical_quiz

logger = logging.getLogger(__name__)


class GenerationPipeline:
    """
    Graph nodes for one generation request.

    The nodes are bound methods so the model adapter, scorer, and settings
    are injected rather than looked up globally.
    """

    def __init__(
        self,
        settings: Settings,
        adapter: ModelAdapter,
        quality_matrix: QualityMatrix | None = None,
        prompt_builder: PromptBuilder | None = None,
    ):
        self.settings = settings
        self.adapter = adapter
        self.quality_matrix = quality_matrix or QualityMatrix(settings.quality_settings())
        self.prompt_builder = prompt_builder or PromptBuilder()

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before a 1-based attempt; doubles on each retry."""
        if attempt < 2:
            return 0.0
        return self.settings.retry_delay_seconds * 2 ** (attempt - 2)

    async def prepare_attempt(self, state: GenerationState) -> dict[str, Any]:
        """
        Start the next attempt: wait out the backoff and build its prompts.

        Args:
            state: Current generation state

        Returns:
            Per-attempt fields for the new attempt
        """
        attempt = state.get("attempt", 0) + 1
        delay = self.backoff_delay(attempt)
        if delay > 0:
            logger.info("Waiting %.1fs before attempt %d", delay, attempt)
            await asyncio.sleep(delay)

        strict = attempt > 1
        prompts = self.prompt_builder.build_prompts(
            state["request"],
            strict=strict,
            previous_error=state.get("last_failure_reason") if strict else None,
        )
        max_tokens = self.settings.max_tokens_for(attempt)
        temperature = self.settings.temperature_for(attempt)
        logger.info(
            "Attempt %d/%d: max_tokens=%d temperature=%.2f%s",
            attempt,
            state["max_attempts"],
            max_tokens,
            temperature,
            " (strict)" if strict else "",
        )

        return {
            "attempt": attempt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "strict": strict,
            "system_prompt": prompts.system_prompt,
            "prompt": prompts.prompt,
            "attempt_started": time.monotonic(),
            "raw_response": None,
            "quiz": None,
            "quality": None,
            "failure_kind": None,
            "failure_reason": None,
        }

    async def invoke_model(self, state: GenerationState) -> dict[str, Any]:
        """Call the model once; transport failures and truncation end the attempt."""
        response = await self.adapter.generate(
            prompt=state["prompt"],
            system_prompt=state["system_prompt"],
            max_tokens=state["max_tokens"],
            temperature=state["temperature"],
            timeout=state.get("timeout"),
        )
        update: dict[str, Any] = {"raw_response": response}

        if not response.success:
            update["failure_kind"] = response.failure_kind or FailureKind.PROVIDER_ERROR
            update["failure_reason"] = response.error or "Model call failed"
        elif response.truncated:
            update["failure_kind"] = FailureKind.TRUNCATED
            update["failure_reason"] = (
                f"Output was cut off at the {state['max_tokens']} token limit ({response.finish_reason})"
            )
        return update

    async def parse_response(self, state: GenerationState) -> dict[str, Any]:
        """Recover, normalize, and validate the model output into a canonical quiz."""
        request = state["request"]
        attempt = state["attempt"]
        content = state["raw_response"].content or ""
        warnings: list[str] = []

        review = review_quiz_content(content, request)
        update: dict[str, Any] = {"content_confidence": review.confidence}

        try:
            recovered = recover_json(content)
            if not recovered.ok:
                raise JSONRecoveryError(
                    f"Could not parse model output as JSON: {recovered.error}",
                    recovered.error_offset,
                )
            if recovered.repairs:
                warnings.append(f"Attempt {attempt}: repaired JSON ({', '.join(recovered.repairs)})")

            normalized = normalize_quiz_structure(recovered.data, request)
            if normalized is None:
                raise QuizStructureError("Model output does not match any known quiz structure")

            notes: list[str] = []
            ensure_required_fields(normalized, request, notes)
            warnings.extend(f"Attempt {attempt}: {note}" for note in notes)

            update["quiz"] = build_canonical_quiz(normalized, request)
        except QuizGenerationError as e:
            logger.warning("Attempt %d rejected: %s", attempt, e.message)
            update["failure_kind"] = e.kind
            update["failure_reason"] = e.message
        except Exception as e:
            logger.exception("Unexpected error while parsing attempt %d", attempt)
            update["failure_kind"] = FailureKind.INTERNAL_ERROR
            update["failure_reason"] = f"Unexpected error while parsing: {e}"

        update["warnings"] = warnings
        return update

    async def score_quiz(self, state: GenerationState) -> dict[str, Any]:
        """Score a validated quiz and keep the best one seen."""
        quiz = state["quiz"]
        report = self.quality_matrix.evaluate_quiz(quiz, state["request"])
        update: dict[str, Any] = {"quality": report}

        best = state.get("best_score")
        if best is None or report.overall_score > best:
            update["best_quiz"] = quiz
            update["best_quality"] = report
            update["best_score"] = report.overall_score

        if not report.is_passing and report.overall_score < self.settings.acceptance_threshold:
            update["failure_kind"] = FailureKind.LOW_QUALITY
            update["failure_reason"] = (
                f"Quality score {report.overall_score} is below the acceptance threshold "
                f"{self.settings.acceptance_threshold}"
            )
        return update

    async def record_attempt(self, state: GenerationState) -> dict[str, Any]:
        """Close the current attempt and append its record."""
        attempt = state["attempt"]
        failure_kind = state.get("failure_kind")
        if failure_kind is None:
            outcome = AttemptOutcome.SUCCESS
        elif attempt < state["max_attempts"]:
            outcome = AttemptOutcome.RETRY
        else:
            outcome = AttemptOutcome.EXHAUSTED

        quality = state.get("quality")
        response = state.get("raw_response")
        record = AttemptRecord(
            attempt=attempt,
            max_tokens=state["max_tokens"],
            temperature=state["temperature"],
            strict=state.get("strict", False),
            outcome=outcome,
            failure_kind=failure_kind,
            reason=state.get("failure_reason"),
            score=quality.overall_score if quality else None,
            finish_reason=response.finish_reason if response else None,
            elapsed_seconds=round(time.monotonic() - state["attempt_started"], 3),
        )

        update: dict[str, Any] = {"attempts": [record]}
        if failure_kind is not None:
            update["last_failure_kind"] = failure_kind
            update["last_failure_reason"] = state.get("failure_reason")
        return update

    def _diagnostics(self, state: GenerationState) -> GenerationDiagnostics:
        return GenerationDiagnostics(
            started_at=state["started_at"],
            model_used=self.adapter.model_name,
            attempts=state.get("attempts", []),
            best_score=state.get("best_score"),
            last_failure_kind=state.get("last_failure_kind"),
            last_failure_reason=state.get("last_failure_reason"),
            warnings=state.get("warnings", []),
            content_confidence=state.get("content_confidence"),
            system_prompt=state.get("system_prompt"),
            prompt=state.get("prompt"),
        )

    async def finalize_success(self, state: GenerationState) -> dict[str, Any]:
        """Build the successful result; borderline quizzes are flagged for review."""
        quality = state["quality"]
        needs_review = not quality.is_passing or quality.requires_manual_review
        if not quality.is_passing:
            logger.info(
                "Accepting quiz at %d (below pass threshold %d), flagged for review",
                quality.overall_score,
                self.settings.pass_threshold,
            )
        result = GenerationResult(
            success=True,
            quiz=state["quiz"],
            quality=quality,
            needs_review=needs_review,
            diagnostics=self._diagnostics(state),
        )
        return {"result": result}

    async def finalize_failure(self, state: GenerationState) -> dict[str, Any]:
        """Build the failure result with the best validated quiz, if any."""
        attempts = len(state.get("attempts", []))
        best_score = state.get("best_score")
        error = (
            f"Failed to generate valid quiz after {attempts} attempts. "
            f"Last error: {state.get('last_failure_reason') or 'unknown'}. "
            f"Best confidence: {best_score if best_score is not None else 0}%"
        )
        logger.error(error)
        best_quiz = state.get("best_quiz")
        result = GenerationResult(
            success=False,
            quiz=best_quiz,
            error=error,
            quality=state.get("best_quality"),
            needs_review=best_quiz is not None,
            diagnostics=self._diagnostics(state),
        )
        return {"result": result}


def route_after_invoke(state: GenerationState) -> Literal["parse", "record"]:
    """Failed or truncated calls skip parsing and scoring."""
    return "record" if state.get("failure_kind") else "parse"


def route_after_parse(state: GenerationState) -> Literal["score", "record"]:
    return "record" if state.get("failure_kind") else "score"


def route_after_attempt(state: GenerationState) -> Literal["retry", "finish", "exhausted"]:
    """
    Decide what follows a finished attempt.

    Args:
        state: Current generation state

    Returns:
        "finish" on an accepted quiz, "retry" while attempts remain, else "exhausted"
    """
    if state.get("failure_kind") is None:
        return "finish"
    if state["attempt"] < state["max_attempts"]:
        return "retry"
    return "exhausted"


def create_generation_workflow(pipeline: GenerationPipeline) -> StateGraph:
    """
    Create the LangGraph workflow for quiz generation.

    The workflow follows this structure:
    1. prepare_attempt - Backoff, token ceiling, temperature, prompts
    2. invoke_model - One model call
    3. [Conditional] Skip to record_attempt on failure or truncation
    4. parse_response - JSON recovery, normalization, validation
    5. [Conditional] Skip to record_attempt on failure
    6. score_quiz - Quality Matrix
    7. record_attempt - Append the attempt record
    8. [Conditional] Retry, finish, or give up

    Args:
        pipeline: Node implementations bound to their services

    Returns:
        Uncompiled StateGraph
    """
    workflow = StateGraph(GenerationState)

    workflow.add_node("prepare_attempt", pipeline.prepare_attempt)
    workflow.add_node("invoke_model", pipeline.invoke_model)
    workflow.add_node("parse_response", pipeline.parse_response)
    workflow.add_node("score_quiz", pipeline.score_quiz)
    workflow.add_node("record_attempt", pipeline.record_attempt)
    workflow.add_node("finalize_success", pipeline.finalize_success)
    workflow.add_node("finalize_failure", pipeline.finalize_failure)

    workflow.set_entry_point("prepare_attempt")
    workflow.add_edge("prepare_attempt", "invoke_model")

    workflow.add_conditional_edges(
        "invoke_model",
        route_after_invoke,
        {"parse": "parse_response", "record": "record_attempt"},
    )
    workflow.add_conditional_edges(
        "parse_response",
        route_after_parse,
        {"score": "score_quiz", "record": "record_attempt"},
    )
    workflow.add_edge("score_quiz", "record_attempt")

    workflow.add_conditional_edges(
        "record_attempt",
        route_after_attempt,
        {
            "retry": "prepare_attempt",  # Loop back with a stricter prompt
            "finish": "finalize_success",
            "exhausted": "finalize_failure",
        },
    )

    workflow.add_edge("finalize_success", END)
    workflow.add_edge("finalize_failure", END)

    return workflow


def compile_workflow(pipeline: GenerationPipeline):
    """
    Compile the workflow and return it ready for execution.

    Returns:
        Compiled workflow
    """
    return create_generation_workflow(pipeline).compile()


def recursion_limit_for(max_attempts: int) -> int:
    """Graph steps needed for ``max_attempts`` full attempts plus finalization."""
    return max_attempts * 6 + 4
