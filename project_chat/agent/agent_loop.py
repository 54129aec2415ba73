"""
Tool loop: model turn -> tool calls -> results fed back -> next model turn, until
the model ends its turn, the turn ceiling is hit, or the model call fails.

run_tool_loop is an async generator of protocol events. It mutates the given
ToolLoopState in place so the caller can persist whatever was reached, even
when the consumer stops iterating mid-stream.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator

from ..llm.caller import ModelCaller
from ..llm.models import (
    NATURAL_STOP_REASONS,
    ResumeHandle,
    TextDelta,
    ToolCallFinished,
    ToolCallStarted,
    TurnCompleted,
)
from ..protocol.events import (
    ChatEvent,
    content_delta,
    error_event,
    message_end,
    tool_use_end,
    tool_use_start,
)
from .tool_registry import NamespacedRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 10
DEFAULT_MAX_TOKENS = 4096


class LoopStatus(str, Enum):
    AWAITING_MODEL_RESPONSE = "awaiting_model_response"
    STREAMING_TEXT = "streaming_text"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    ERROR = "error"


@dataclass
class ToolLoopState:
    messages: list[dict[str, Any]]
    status: LoopStatus = LoopStatus.AWAITING_MODEL_RESPONSE
    # Model calls made so far
    turns: int = 0
    resume_handle: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in (LoopStatus.DONE, LoopStatus.ERROR)


def _tool_call_ids(msg: dict) -> list[str]:
    """Extract tool call ids from an assistant message."""
    return [tc.get("id") or "" for tc in msg.get("tool_calls") or [] if tc]


def sanitize_history(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Make a history safe to send to a model API.

    An assistant message with tool_calls must be immediately followed by tool
    messages answering every call. If it is not (the turn was stopped, or the
    history was trimmed), the tool_calls are dropped and the text is kept.
    Tool messages not attached to such an assistant message are dropped.
    """
    out: list[dict[str, Any]] = []
    i = 0
    while i < len(messages):
        m = messages[i]
        role = m.get("role")
        if role == "user":
            if m.get("content") is not None:
                out.append({"role": "user", "content": m["content"]})
            i += 1
            continue
        if role != "assistant":
            # Orphan tool message (or unknown role)
            i += 1
            continue

        want_ids = set(_tool_call_ids(m))
        if not want_ids:
            out.append({"role": "assistant", "content": m.get("content") or ""})
            i += 1
            continue

        # Peek ahead for the tool messages that answer this assistant message
        results = []
        j = i + 1
        while j < len(messages) and messages[j].get("role") == "tool":
            results.append(messages[j])
            j += 1
        got_ids = {r.get("tool_call_id") or "" for r in results}
        if got_ids >= want_ids:
            out.append({"role": "assistant", "content": m.get("content"), "tool_calls": m["tool_calls"]})
            for r in results:
                if r.get("tool_call_id") in want_ids:
                    out.append({"role": "tool", "tool_call_id": r["tool_call_id"], "content": r.get("content") or ""})
        else:
            # Missing tool results; send the assistant turn as text only
            out.append({"role": "assistant", "content": m.get("content") or ""})
        i = j
    return out


async def run_tool_loop(
    caller: ModelCaller,
    state: ToolLoopState,
    registry: NamespacedRegistry,
    *,
    system_prompt: str,
    max_turns: int = DEFAULT_MAX_TURNS,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> AsyncIterator[ChatEvent]:
    """
    Drive model turns and tool executions for one user message.

    Args:
        caller: Model strategy
        state: Loop state; state.messages must end with the new user message
        registry: Tools offered to the model, dispatched by namespaced name
        system_prompt: System message for every turn
        max_turns: Hard ceiling on model calls
        max_tokens: Response budget per model call

    Yields:
        ChatEvent: content_delta / tool_use_start / tool_use_end / message_end / error
    """
    tools = registry.declarations()

    while True:
        state.turns += 1
        if state.turns > max_turns:
            logger.info(f"Tool loop reached max_turns={max_turns}, stopping")
            state.status = LoopStatus.DONE
            return

        state.status = LoopStatus.AWAITING_MODEL_RESPONSE
        completed: TurnCompleted | None = None
        text_parts: list[str] = []
        announced: set[str] = set()
        try:
            stream = caller.stream_turn(
                system_prompt=system_prompt,
                messages=sanitize_history(state.messages),
                tools=tools,
                max_tokens=max_tokens,
                resume_handle=state.resume_handle,
            )
            async with contextlib.aclosing(stream):
                async for event in stream:
                    if isinstance(event, TextDelta):
                        state.status = LoopStatus.STREAMING_TEXT
                        text_parts.append(event.text)
                        yield content_delta(event.text)
                    elif isinstance(event, ToolCallStarted):
                        announced.add(event.id)
                        yield tool_use_start(event.id, event.name, event.input)
                    elif isinstance(event, ToolCallFinished):
                        yield tool_use_end(event.id, event.name)
                    elif isinstance(event, ResumeHandle):
                        state.resume_handle = event.handle
                    elif isinstance(event, TurnCompleted):
                        completed = event
                        break
            if completed is None:
                raise RuntimeError("Model stream ended without completing the turn")
        except (GeneratorExit, asyncio.CancelledError):
            # Stopped mid-turn: keep what the visitor already saw
            if text_parts:
                state.messages.append({"role": "assistant", "content": "".join(text_parts)})
            raise
        except Exception as e:
            logger.exception(f"Model call failed on turn {state.turns}")
            state.status = LoopStatus.ERROR
            yield error_event(str(e) or type(e).__name__, code=caller.error_code)
            return

        state.messages.append(completed.assistant_message())

        if completed.stop_reason in NATURAL_STOP_REASONS:
            yield message_end(completed.message_id)
            state.status = LoopStatus.DONE
            return

        if not completed.tool_calls:
            logger.warning(f"Model stopped with {completed.stop_reason!r} but requested no tools; ending turn")
            state.status = LoopStatus.DONE
            return

        state.status = LoopStatus.EXECUTING_TOOLS
        tool_messages = []
        for call in completed.tool_calls:
            if call.id not in announced:
                yield tool_use_start(call.id, call.name, call.parsed_arguments())
            result = await registry.call_tool(call.name, call.arguments)
            if result.is_error:
                logger.info(f"Tool {call.name} returned an error result")
            tool_messages.append({"role": "tool", "tool_call_id": call.id, "content": result.model_content()})
            yield tool_use_end(call.id, call.name)
        state.messages.extend(tool_messages)
