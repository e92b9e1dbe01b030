"""Public entry point: turn a generation request into a GenerationResult."""

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from quizgen.config.settings import Settings, get_settings
from quizgen.graph.state import create_initial_state
from quizgen.graph.workflow import GenerationPipeline, compile_workflow, recursion_limit_for
from quizgen.models.generation import FailureKind, GenerationDiagnostics, GenerationResult
from quizgen.models.quiz import GenerationRequest
from quizgen.pipeline.model_adapter import ModelAdapter
from quizgen.pipeline.quality import QualityMatrix

logger = logging.getLogger(__name__)


def _failure(message: str, kind: FailureKind) -> GenerationResult:
    return GenerationResult(
        success=False,
        error=message,
        diagnostics=GenerationDiagnostics(last_failure_kind=kind, last_failure_reason=message),
    )


class QuizGenerator:
    """
    Generates validated, quality-scored quizzes.

    ``generate`` never raises: every failure, including an invalid request,
    comes back as a GenerationResult with ``success=False``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        adapter: ModelAdapter | None = None,
        quality_matrix: QualityMatrix | None = None,
    ):
        self.settings = settings or get_settings()
        self.adapter = adapter or ModelAdapter.from_settings(self.settings)
        self.pipeline = GenerationPipeline(self.settings, self.adapter, quality_matrix=quality_matrix)
        self.workflow = compile_workflow(self.pipeline)

    async def generate(
        self,
        request: GenerationRequest | dict[str, Any],
        timeout: float | None = None,
    ) -> GenerationResult:
        """
        Run the generation workflow for one request.

        Args:
            request: A GenerationRequest or the dict to build one from
            timeout: Per-call model timeout in seconds, overriding settings

        Returns:
            GenerationResult
        """
        try:
            if not isinstance(request, GenerationRequest):
                request = GenerationRequest.model_validate(request)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "request"
            return _failure(f"Invalid generation request: {field}: {first['msg']}", FailureKind.INTERNAL_ERROR)

        logger.info(
            "Generating %d %s questions on %r (%s)",
            request.question_count,
            request.difficulty.value,
            request.topic,
            ", ".join(request.type_values),
        )

        try:
            final_state = await self.workflow.ainvoke(
                create_initial_state(request, self.settings, timeout),
                config={"recursion_limit": recursion_limit_for(self.settings.max_attempts)},
            )
        except Exception as e:
            logger.exception("Generation workflow crashed")
            return _failure(f"Quiz generation failed: {e}", FailureKind.INTERNAL_ERROR)

        result = final_state.get("result")
        if result is None:
            return _failure("Quiz generation ended without a result", FailureKind.INTERNAL_ERROR)
        return result

    def generate_sync(
        self,
        request: GenerationRequest | dict[str, Any],
        timeout: float | None = None,
    ) -> GenerationResult:
        """Blocking wrapper around ``generate`` for callers without an event loop."""
        return asyncio.run(self.generate(request, timeout=timeout))
