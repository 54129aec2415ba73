"""
ModelCaller: the seam between the tool loop and a concrete model/SDK.

A caller streams one model turn: text deltas and tool-call blocks as they arrive,
terminated by a TurnCompleted carrying the stop reason. The loop assumes nothing else.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from ..common.errors import API_ERROR
from .models import ModelEvent


class ModelCaller(ABC):
    # True when the caller keeps conversation state itself and continues it via a handle
    uses_resume_handle: bool = False
    # False when the model cannot be offered the tool registry (it runs its own tools)
    accepts_tools: bool = True
    # Error code reported when a turn fails in this caller
    error_code: str = API_ERROR

    @abstractmethod
    def stream_turn(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
        resume_handle: str | None = None,
    ) -> AsyncIterator[ModelEvent]:
        """
        Stream one model turn.

        Args:
            system_prompt: System instructions
            messages: Conversation history ending with the newest user or tool turn
            tools: Tool declarations, each {name, description, input_schema}
            max_tokens: Response budget for this turn
            resume_handle: Opaque continuation handle from a previous ResumeHandle event

        Yields:
            ModelEvent: TextDelta / ToolCallStarted / ToolCallFinished / ResumeHandle,
            then exactly one TurnCompleted
        """
