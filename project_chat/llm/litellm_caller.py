"""
Direct model API strategy: one streaming litellm completion per turn.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from ..common.id import create_id
from . import llm
from .caller import ModelCaller
from .models import ModelEvent, TextDelta, ToolCall, ToolCallStarted, TurnCompleted

logger = logging.getLogger(__name__)

_FINISH_REASON_MAP = {
    "stop": "end_turn",
    "end_turn": "end_turn",
    "length": "max_tokens",
    "max_tokens": "max_tokens",
    "tool_calls": "tool_use",
    "function_call": "tool_use",
    "tool_use": "tool_use",
}


class _PendingToolCall:
    """Tool-call fragments accumulated across chunks, keyed by index."""

    def __init__(self) -> None:
        self.id = ""
        self.name = ""
        self.arguments: list[str] = []
        self.announced = False

    def to_tool_call(self) -> ToolCall:
        return ToolCall(id=self.id or create_id(), name=self.name, arguments="".join(self.arguments) or "{}")


class LiteLLMCaller(ModelCaller):
    def __init__(self, model: str, api_key: str | None = None):
        self.model = model
        self.api_key = api_key

    async def stream_turn(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
        resume_handle: str | None = None,
    ) -> AsyncIterator[ModelEvent]:
        llm_messages = [{"role": "system", "content": system_prompt}, *messages]
        stream = await llm.agent_completion_stream(
            model=self.model,
            messages=llm_messages,
            api_key=self.api_key,
            max_tokens=max_tokens,
            tools=llm.tool_definitions(tools) if tools else None,
            tool_choice="auto" if tools else None,
        )

        message_id = ""
        finish_reason = None
        text_parts: list[str] = []
        pending: dict[int, _PendingToolCall] = {}

        async for chunk in stream:
            message_id = message_id or (getattr(chunk, "id", None) or "")
            choices = getattr(chunk, "choices", None) or []
            if not choices:
                continue
            choice = choices[0]
            delta = getattr(choice, "delta", None)
            if delta is not None:
                text = getattr(delta, "content", None)
                if text:
                    text_parts.append(text)
                    yield TextDelta(text=text)
                for tc in getattr(delta, "tool_calls", None) or []:
                    idx = getattr(tc, "index", None)
                    if idx is None:
                        idx = len(pending)
                    call = pending.setdefault(idx, _PendingToolCall())
                    if getattr(tc, "id", None):
                        call.id = tc.id
                    fn = getattr(tc, "function", None)
                    if fn is not None:
                        if getattr(fn, "name", None):
                            call.name = fn.name
                        if getattr(fn, "arguments", None):
                            call.arguments.append(fn.arguments)
                    if call.id and call.name and not call.announced:
                        call.announced = True
                        yield ToolCallStarted(id=call.id, name=call.name)
            if getattr(choice, "finish_reason", None):
                finish_reason = choice.finish_reason

        tool_calls = [pending[i].to_tool_call() for i in sorted(pending) if pending[i].name]
        stop_reason = _FINISH_REASON_MAP.get(finish_reason or "stop", "end_turn")
        if tool_calls:
            stop_reason = "tool_use"
        logger.debug(f"Model turn finished: finish_reason={finish_reason} tool_calls={len(tool_calls)}")
        yield TurnCompleted(
            message_id=message_id or create_id(),
            stop_reason=stop_reason,
            text="".join(text_parts),
            tool_calls=tool_calls,
        )
