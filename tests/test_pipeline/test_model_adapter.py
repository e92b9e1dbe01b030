"""Tests for the model invocation adapter."""

import asyncio

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from quizgen.models.generation import FailureKind
from quizgen.pipeline.model_adapter import extract_finish_reason, extract_text, is_max_length_stop
from tests.helpers import ai_message


def call(adapter, **kwargs):
    params = {"prompt": "Make a quiz", "system_prompt": "You are a teacher", "max_tokens": 8192, "temperature": 0.7}
    params.update(kwargs)
    return asyncio.run(adapter.generate(**params))


class TestHelpers:
    """Test response parsing helpers."""

    def test_extract_text_from_blocks(self):
        """Test content block lists are flattened."""
        content = [{"type": "text", "text": '{"a": '}, {"type": "tool_use", "id": "x"}, {"type": "text", "text": "1}"}]

        assert extract_text(content) == '{"a": 1}'

    def test_finish_reason_keys(self):
        """Test each provider's stop reason key."""
        assert extract_finish_reason({"stop_reason": "end_turn"}) == "end_turn"
        assert extract_finish_reason({"stopReason": "max_tokens"}) == "max_tokens"
        assert extract_finish_reason({"finish_reason": "length"}) == "length"
        assert extract_finish_reason({}) is None

    def test_max_length_stop(self):
        """Test which stop reasons mean the output was cut off."""
        assert is_max_length_stop("max_tokens")
        assert is_max_length_stop("MAX_TOKENS")
        assert is_max_length_stop("length")
        assert not is_max_length_stop("end_turn")
        assert not is_max_length_stop(None)


class TestModelAdapter:
    """Test ModelAdapter.generate."""

    def test_success(self, scripted_model):
        """Test a normal reply."""
        model, adapter = scripted_model([ai_message('{"title": "T"}')])

        response = call(adapter, max_tokens=12288, temperature=0.5)

        assert response.success
        assert response.content == '{"title": "T"}'
        assert response.finish_reason == "end_turn"
        assert not response.truncated
        assert model.calls[0]["max_tokens"] == 12288
        assert model.calls[0]["temperature"] == 0.5
        system, human = model.calls[0]["messages"]
        assert isinstance(system, SystemMessage) and system.content == "You are a teacher"
        assert isinstance(human, HumanMessage) and human.content == "Make a quiz"

    def test_content_blocks(self, scripted_model):
        """Test list content is joined into text."""
        _, adapter = scripted_model([AIMessage(content=[{"type": "text", "text": "{}"}])])

        assert call(adapter).content == "{}"

    def test_max_tokens_marks_truncated(self, scripted_model):
        """Test a max_tokens stop is reported as truncated."""
        _, adapter = scripted_model([ai_message('{"questions": [', stop_reason="max_tokens")])

        response = call(adapter)

        assert response.success
        assert response.truncated
        assert response.finish_reason == "max_tokens"

    def test_length_finish_reason(self, scripted_model):
        """Test the OpenAI-style finish_reason key."""
        _, adapter = scripted_model([ai_message("{", stop_reason="length", key="finish_reason")])

        assert call(adapter).truncated

    def test_empty_output(self, scripted_model):
        """Test whitespace-only content."""
        _, adapter = scripted_model([ai_message("  \n")])

        response = call(adapter)

        assert not response.success
        assert response.failure_kind == FailureKind.EMPTY_OUTPUT

    def test_provider_error(self, scripted_model):
        """Test provider exceptions are reported, not raised."""
        _, adapter = scripted_model([RuntimeError("throttled")])

        response = call(adapter)

        assert not response.success
        assert response.failure_kind == FailureKind.PROVIDER_ERROR
        assert response.error == "Model call failed: throttled"

    def test_timeout(self, scripted_model):
        """Test a slow call is cancelled."""

        async def slow():
            await asyncio.sleep(1)
            return ai_message("{}")

        _, adapter = scripted_model([slow])

        response = call(adapter, timeout=0.05)

        assert not response.success
        assert response.failure_kind == FailureKind.TIMEOUT
        assert response.error == "Model call timed out after 0.05s"
