"""
Events a ModelCaller yields while streaming one model turn.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Literal, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

StopReason = Literal["end_turn", "max_tokens", "tool_use"]

# The model finished without asking for tools
NATURAL_STOP_REASONS: frozenset[str] = frozenset({"end_turn", "max_tokens"})


class ToolCall(BaseModel):
    id: str
    name: str
    # Raw JSON string, as the model produced it
    arguments: str = "{}"

    def parsed_arguments(self) -> dict[str, Any] | None:
        """Arguments as a dict, or None when they are not a JSON object."""
        try:
            value = json.loads(self.arguments) if self.arguments.strip() else {}
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None

    def to_message_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class TextDelta(BaseModel):
    kind: Literal["text_delta"] = "text_delta"
    text: str


class ToolCallStarted(BaseModel):
    kind: Literal["tool_call_started"] = "tool_call_started"
    id: str
    name: str
    input: Any = None


class ToolCallFinished(BaseModel):
    """Only emitted by callers whose agent executes tools itself."""
    kind: Literal["tool_call_finished"] = "tool_call_finished"
    id: str
    name: str


class ResumeHandle(BaseModel):
    kind: Literal["resume_handle"] = "resume_handle"
    handle: str


class TurnCompleted(BaseModel):
    kind: Literal["turn_completed"] = "turn_completed"
    message_id: str
    stop_reason: StopReason
    text: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)

    def assistant_message(self) -> dict[str, Any]:
        """The completed turn in the chat history format."""
        msg: dict[str, Any] = {"role": "assistant", "content": self.text or None}
        if self.tool_calls:
            msg["tool_calls"] = [tc.to_message_dict() for tc in self.tool_calls]
        elif msg["content"] is None:
            msg["content"] = ""
        return msg


ModelEvent = Union[TextDelta, ToolCallStarted, ToolCallFinished, ResumeHandle, TurnCompleted]
