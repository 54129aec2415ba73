# Wire protocol shared by the server (emits events) and clients (parse them).

from .models import ChatRequest, RequestContext, PageInfo, PageContent
from .events import (
    EVENT_TYPES,
    ChatEvent,
    SessionEvent,
    ContentDeltaEvent,
    ToolUseStartEvent,
    ToolUseEndEvent,
    MessageEndEvent,
    DoneEvent,
    ErrorEvent,
    build_event,
    session_event,
    content_delta,
    tool_use_start,
    tool_use_end,
    message_end,
    done_event,
    error_event,
)
from .sse import serialize_event, parse_sse_line, SSEParser, parse_events, iter_events

__all__ = [
    "ChatRequest",
    "RequestContext",
    "PageInfo",
    "PageContent",
    "EVENT_TYPES",
    "ChatEvent",
    "SessionEvent",
    "ContentDeltaEvent",
    "ToolUseStartEvent",
    "ToolUseEndEvent",
    "MessageEndEvent",
    "DoneEvent",
    "ErrorEvent",
    "build_event",
    "session_event",
    "content_delta",
    "tool_use_start",
    "tool_use_end",
    "message_end",
    "done_event",
    "error_event",
    "serialize_event",
    "parse_sse_line",
    "SSEParser",
    "parse_events",
    "iter_events",
]
