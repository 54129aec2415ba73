"""
Server -> client events. ChatEvent is a union discriminated on `event`.
Events are transient: streamed, never persisted.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

EVENT_TYPES = (
    "session",
    "content_delta",
    "tool_use_start",
    "tool_use_end",
    "message_end",
    "done",
    "error",
)


class SessionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")


class ContentDeltaPayload(BaseModel):
    text: str


class ToolUseStartPayload(BaseModel):
    id: str
    tool: str
    input: Any = None


class ToolUseEndPayload(BaseModel):
    id: str
    tool: str


class MessageEndPayload(BaseModel):
    id: str


class ErrorPayload(BaseModel):
    message: str
    code: str | None = None


class SessionEvent(BaseModel):
    event: Literal["session"] = "session"
    data: SessionPayload


class ContentDeltaEvent(BaseModel):
    event: Literal["content_delta"] = "content_delta"
    data: ContentDeltaPayload


class ToolUseStartEvent(BaseModel):
    event: Literal["tool_use_start"] = "tool_use_start"
    data: ToolUseStartPayload


class ToolUseEndEvent(BaseModel):
    event: Literal["tool_use_end"] = "tool_use_end"
    data: ToolUseEndPayload


class MessageEndEvent(BaseModel):
    event: Literal["message_end"] = "message_end"
    data: MessageEndPayload


class DoneEvent(BaseModel):
    event: Literal["done"] = "done"
    data: SessionPayload


class ErrorEvent(BaseModel):
    event: Literal["error"] = "error"
    data: ErrorPayload


ChatEvent = Annotated[
    Union[
        SessionEvent,
        ContentDeltaEvent,
        ToolUseStartEvent,
        ToolUseEndEvent,
        MessageEndEvent,
        DoneEvent,
        ErrorEvent,
    ],
    Field(discriminator="event"),
]

_event_adapter: TypeAdapter = TypeAdapter(ChatEvent)


def build_event(event_type: str, data: dict[str, Any]) -> ChatEvent:
    """Validate a raw (type, payload) pair into a typed event. Raises pydantic.ValidationError."""
    return _event_adapter.validate_python({"event": event_type, "data": data})


def session_event(session_id: str) -> SessionEvent:
    return SessionEvent(data=SessionPayload(session_id=session_id))


def content_delta(text: str) -> ContentDeltaEvent:
    return ContentDeltaEvent(data=ContentDeltaPayload(text=text))


def tool_use_start(call_id: str, tool: str, tool_input: Any = None) -> ToolUseStartEvent:
    return ToolUseStartEvent(data=ToolUseStartPayload(id=call_id, tool=tool, input=tool_input))


def tool_use_end(call_id: str, tool: str) -> ToolUseEndEvent:
    return ToolUseEndEvent(data=ToolUseEndPayload(id=call_id, tool=tool))


def message_end(message_id: str) -> MessageEndEvent:
    return MessageEndEvent(data=MessageEndPayload(id=message_id))


def done_event(session_id: str) -> DoneEvent:
    return DoneEvent(data=SessionPayload(session_id=session_id))


def error_event(message: str, code: str | None = None) -> ErrorEvent:
    return ErrorEvent(data=ErrorPayload(message=message, code=code))
