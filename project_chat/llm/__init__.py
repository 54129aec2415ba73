# Model-calling strategies behind one ModelCaller interface.

from .llm import is_retryable_error, get_temperature, tool_definitions, agent_completion_stream
from .models import (
    ModelEvent,
    TextDelta,
    ToolCall,
    ToolCallStarted,
    ToolCallFinished,
    ResumeHandle,
    TurnCompleted,
    NATURAL_STOP_REASONS,
)
from .caller import ModelCaller
from .litellm_caller import LiteLLMCaller
from .agent_process import AgentProcessCaller, DEFAULT_AGENT_COMMAND
from .factory import create_model_caller

__all__ = [
    "is_retryable_error",
    "get_temperature",
    "tool_definitions",
    "agent_completion_stream",
    "ModelEvent",
    "TextDelta",
    "ToolCall",
    "ToolCallStarted",
    "ToolCallFinished",
    "ResumeHandle",
    "TurnCompleted",
    "NATURAL_STOP_REASONS",
    "ModelCaller",
    "LiteLLMCaller",
    "AgentProcessCaller",
    "DEFAULT_AGENT_COMMAND",
    "create_model_caller",
]
