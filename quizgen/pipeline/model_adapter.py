"""Model Invocation Adapter - One chat-model call per attempt, never raising."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from quizgen.config.settings import Settings
from quizgen.models.generation import FailureKind, RawModelResponse

logger = logging.getLogger(__name__)

# (temperature, max_tokens) -> chat model
ModelFactory = Callable[[float, int], BaseChatModel]

FINISH_REASON_KEYS = ("stop_reason", "stopReason", "finish_reason")
MAX_LENGTH_REASONS = {"max_tokens", "length"}


def create_model_factory(settings: Settings) -> ModelFactory:
    """
    Build the factory that creates a configured chat model for each call.

    Args:
        settings: Application settings naming the provider and model

    Returns:
        Callable taking (temperature, max_tokens)
    """
    if settings.model_provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        def anthropic_model(temperature: float, max_tokens: int) -> BaseChatModel:
            kwargs: dict[str, Any] = {}
            if settings.anthropic_api_key:
                kwargs["api_key"] = settings.anthropic_api_key
            return ChatAnthropic(
                model=settings.model_name,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )

        return anthropic_model

    from langchain_aws import ChatBedrock

    def bedrock_model(temperature: float, max_tokens: int) -> BaseChatModel:
        kwargs: dict[str, Any] = {}
        if settings.aws_default_region:
            kwargs["region_name"] = settings.aws_default_region
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            kwargs["aws_access_key_id"] = settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        return ChatBedrock(
            model=settings.model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )

    return bedrock_model


def extract_text(content: Any) -> str:
    """Flatten message content (a string or a list of content blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return ""


def extract_finish_reason(metadata: dict[str, Any] | None) -> str | None:
    """Find the provider's stop reason in response metadata."""
    if not metadata:
        return None
    for key in FINISH_REASON_KEYS:
        value = metadata.get(key)
        if value:
            return str(value)
    return None


def is_max_length_stop(finish_reason: str | None) -> bool:
    return finish_reason is not None and finish_reason.lower() in MAX_LENGTH_REASONS


class ModelAdapter:
    """Invokes the chat model and reports the outcome as a RawModelResponse."""

    def __init__(
        self,
        model_factory: ModelFactory,
        timeout_seconds: float = 120.0,
        model_name: str | None = None,
    ):
        self.model_factory = model_factory
        self.timeout_seconds = timeout_seconds
        self.model_name = model_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelAdapter":
        return cls(
            create_model_factory(settings),
            timeout_seconds=settings.request_timeout_seconds,
            model_name=settings.model_name,
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: float | None = None,
    ) -> RawModelResponse:
        """
        Make one model call.

        Args:
            prompt: Content prompt
            system_prompt: System prompt
            max_tokens: Output token ceiling for this call
            temperature: Sampling temperature for this call
            timeout: Seconds before the call is cancelled (defaults to the adapter's)

        Returns:
            RawModelResponse; failures are reported, not raised
        """
        limit = timeout if timeout is not None else self.timeout_seconds
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=prompt)]

        try:
            llm = self.model_factory(temperature, max_tokens)
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning("Model call timed out after %ss", limit)
            return RawModelResponse(
                success=False,
                error=f"Model call timed out after {limit}s",
                failure_kind=FailureKind.TIMEOUT,
            )
        except Exception as e:
            logger.warning("Model call failed: %s", e)
            return RawModelResponse(
                success=False,
                error=f"Model call failed: {e}",
                failure_kind=FailureKind.PROVIDER_ERROR,
            )

        text = extract_text(response.content)
        finish_reason = extract_finish_reason(getattr(response, "response_metadata", None))
        truncated = is_max_length_stop(finish_reason)

        if not text.strip():
            return RawModelResponse(
                success=False,
                finish_reason=finish_reason,
                truncated=truncated,
                error="Model returned empty content",
                failure_kind=FailureKind.EMPTY_OUTPUT,
            )

        if truncated:
            logger.warning("Model stopped at the %d token ceiling (%s)", max_tokens, finish_reason)
        return RawModelResponse(
            success=True,
            content=text,
            finish_reason=finish_reason,
            truncated=truncated,
        )
