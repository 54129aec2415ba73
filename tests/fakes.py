"""Scripted ModelCaller for tests: each stream_turn() replays the next scripted turn."""
import asyncio

from project_chat.common.errors import API_ERROR
from project_chat.llm.caller import ModelCaller
from project_chat.llm.models import TextDelta, ToolCall, ToolCallStarted, TurnCompleted


class ScriptedCaller(ModelCaller):
    def __init__(self, turns, *, uses_resume_handle=False, error_code=API_ERROR):
        self.turns = list(turns)
        self.calls = []
        self.uses_resume_handle = uses_resume_handle
        self.error_code = error_code

    async def stream_turn(self, *, system_prompt, messages, tools, max_tokens, resume_handle=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": [dict(m) for m in messages],
            "tools": tools,
            "max_tokens": max_tokens,
            "resume_handle": resume_handle,
        })
        if not self.turns:
            raise AssertionError("ScriptedCaller ran out of turns")
        for item in self.turns.pop(0):
            if isinstance(item, BaseException):
                raise item
            await asyncio.sleep(0)
            yield item


def text_turn(text, message_id="msg_final", stop_reason="end_turn"):
    return [TextDelta(text=text), TurnCompleted(message_id=message_id, stop_reason=stop_reason, text=text)]


def tool_turn(*calls, text="", message_id="msg_tool", announce=True):
    """calls: (id, name, arguments_json) tuples."""
    tool_calls = [ToolCall(id=cid, name=name, arguments=args) for cid, name, args in calls]
    events = [TextDelta(text=text)] if text else []
    if announce:
        events += [ToolCallStarted(id=tc.id, name=tc.name) for tc in tool_calls]
    events.append(TurnCompleted(message_id=message_id, stop_reason="tool_use", text=text, tool_calls=tool_calls))
    return events
