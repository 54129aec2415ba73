"""
Subprocess agent strategy: an external agent process runs its own tool loop and
reports progress as newline-delimited JSON on stdout.

The agent keeps the conversation itself; continuity across requests is a resume
handle (the agent's session id), not a message history.

Recognized stdout messages:
    {"type": "system", "subtype": "init", "session_id": "..."}
    {"type": "assistant", "message": {"id": "...", "content": [text | tool_use blocks]}}
    {"type": "user", "message": {"content": [tool_result blocks]}}
    {"type": "result", "is_error": false, "result": "...", "session_id": "..."}
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Sequence

from ..common.errors import AGENT_ERROR, UpstreamCallError
from ..common.id import create_id
from .caller import ModelCaller
from .models import (
    ModelEvent,
    ResumeHandle,
    TextDelta,
    ToolCallFinished,
    ToolCallStarted,
    TurnCompleted,
)

logger = logging.getLogger(__name__)

DEFAULT_AGENT_COMMAND = ["claude", "-p", "--output-format", "stream-json", "--verbose"]
DEFAULT_ALLOWED_TOOLS = ("Read", "Glob", "Grep")
# Agent messages can carry whole files; asyncio's default 64 KiB line limit is too small
_STREAM_LIMIT = 16 * 1024 * 1024


def _latest_user_prompt(messages: list[dict[str, Any]]) -> str:
    for m in reversed(messages):
        if m.get("role") == "user" and isinstance(m.get("content"), str):
            return m["content"]
    raise UpstreamCallError("No user message to send to the agent", code=AGENT_ERROR)


class AgentProcessCaller(ModelCaller):
    uses_resume_handle = True
    accepts_tools = False
    error_code = AGENT_ERROR

    def __init__(
        self,
        command: Sequence[str] | None = None,
        *,
        model: str | None = None,
        allowed_tools: Sequence[str] = DEFAULT_ALLOWED_TOOLS,
        max_turns: int = 10,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self.command = list(command or DEFAULT_AGENT_COMMAND)
        self.model = model
        self.allowed_tools = list(allowed_tools)
        self.max_turns = max_turns
        self.cwd = cwd
        self.env = env

    def build_args(self, prompt: str, system_prompt: str, resume_handle: str | None) -> list[str]:
        args = [*self.command]
        if self.model:
            args += ["--model", self.model]
        if self.allowed_tools:
            args += ["--allowedTools", ",".join(self.allowed_tools)]
        args += ["--max-turns", str(self.max_turns)]
        if system_prompt:
            args += ["--append-system-prompt", system_prompt]
        if resume_handle:
            args += ["--resume", resume_handle]
        args.append(prompt)
        return args

    async def stream_turn(
        self,
        *,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
        resume_handle: str | None = None,
    ) -> AsyncIterator[ModelEvent]:
        # `tools` is unused: the agent reads the project with its own allowed_tools
        args = self.build_args(_latest_user_prompt(messages), system_prompt, resume_handle)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env=self.env,
                limit=_STREAM_LIMIT,
            )
        except OSError as e:
            raise UpstreamCallError(f"Could not start agent process: {e}", code=AGENT_ERROR) from e

        tool_names: dict[str, str] = {}
        text_parts: list[str] = []
        message_id = ""
        try:
            while True:
                line = await proc.stdout.readline()
                if not line:
                    break
                try:
                    msg = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug(f"Ignoring non-JSON agent output: {line[:200]!r}")
                    continue
                msg_type = msg.get("type")

                if msg_type == "system" and msg.get("subtype") == "init" and msg.get("session_id"):
                    yield ResumeHandle(handle=msg["session_id"])

                elif msg_type == "assistant":
                    body = msg.get("message") or {}
                    message_id = body.get("id") or message_id
                    for block in body.get("content") or []:
                        if block.get("type") == "text" and block.get("text"):
                            text_parts.append(block["text"])
                            yield TextDelta(text=block["text"])
                        elif block.get("type") == "tool_use":
                            tool_names[block["id"]] = block.get("name", "")
                            yield ToolCallStarted(id=block["id"], name=block.get("name", ""), input=block.get("input"))

                elif msg_type == "user":
                    body = msg.get("message") or {}
                    content = body.get("content")
                    for block in content if isinstance(content, list) else []:
                        if block.get("type") == "tool_result":
                            call_id = block.get("tool_use_id", "")
                            yield ToolCallFinished(id=call_id, name=tool_names.get(call_id, ""))

                elif msg_type == "result":
                    if msg.get("is_error"):
                        raise UpstreamCallError(str(msg.get("result") or "Agent run failed"), code=AGENT_ERROR)
                    yield TurnCompleted(
                        message_id=message_id or create_id(),
                        stop_reason="end_turn",
                        text="".join(text_parts),
                    )
                    return

            await proc.wait()
            stderr = (await proc.stderr.read()).decode("utf-8", errors="replace").strip()
            raise UpstreamCallError(
                f"Agent process exited with code {proc.returncode} without a result"
                + (f": {stderr[:500]}" if stderr else ""),
                code=AGENT_ERROR,
            )
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
