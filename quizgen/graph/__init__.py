"""LangGraph workflow and state management."""

from .state import GenerationState, create_initial_state
from .workflow import GenerationPipeline, compile_workflow, create_generation_workflow

__all__ = [
    "GenerationState",
    "create_initial_state",
    "GenerationPipeline",
    "compile_workflow",
    "create_generation_workflow",
]
