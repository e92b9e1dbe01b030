"""Quiz payloads and a scripted chat model shared by the tests."""

import json
from typing import Any

from langchain_core.messages import AIMessage

PHOTOSYNTHESIS_MC = {
    "question": "Which process do green plants use to convert light energy into chemical energy?",
    "question_type": "multiple_choice",
    "options": ["Photosynthesis", "Cellular respiration", "Transpiration", "Germination"],
    "correct_answer": 0,
    "explanation": (
        "Photosynthesis is correct because chloroplasts capture sunlight and store the energy in glucose. "
        "The evidence is the oxygen that is released by leaves, for example during a sunny day."
    ),
}

PHOTOSYNTHESIS_TF = {
    "question": "According to plant biology, photosynthesis releases oxygen as a by-product.",
    "question_type": "true_false",
    "options": ["True", "False"],
    "correct_answer": 0,
    "explanation": (
        "True, because the light reactions split water molecules and the oxygen is released into the air. "
        "This evidence explains why aquatic plants produce bubbles in sunlight."
    ),
}

WEAK_MC = {
    "question": "What is it?",
    "question_type": "multiple_choice",
    "options": ["A", "B"],
    "correct_answer": 0,
    "explanation": "",
}


class ScriptedChatModel:
    """
    Async chat-model double that replays a script of responses.

    Each script item is an AIMessage to return, an exception to raise, or an
    async callable awaited in place of the provider call.
    """

    def __init__(self, script: list[Any]):
        self.script = list(script)
        self.calls: list[dict[str, Any]] = []

    def factory(self, temperature: float, max_tokens: int) -> "ScriptedChatModel":
        self.calls.append({"temperature": temperature, "max_tokens": max_tokens})
        return self

    async def ainvoke(self, messages: list[Any]) -> AIMessage:
        self.calls[-1]["messages"] = messages
        if not self.script:
            raise RuntimeError("Script exhausted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return await item()
        return item


def ai_message(content: Any, stop_reason: str = "end_turn", key: str = "stop_reason") -> AIMessage:
    """Build a model reply with provider stop metadata."""
    if isinstance(content, (dict, list)):
        content = json.dumps(content)
    return AIMessage(content=content, response_metadata={key: stop_reason})


def quiz_payload(questions: list[dict[str, Any]], **fields: Any) -> dict[str, Any]:
    """Quiz JSON in the shape the prompt asks for."""
    payload = {
        "title": "Quiz: Photosynthesis",
        "description": "Test your knowledge of Photosynthesis",
        "category": "Science",
        "difficulty": "beginner",
        "duration_minutes": 15,
        "questions": [dict(q) for q in questions],
    }
    payload.update(fields)
    return payload

