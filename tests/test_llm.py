"""Tests for the model callers with mocked litellm streams and a scripted agent process."""
import sys
import textwrap
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
import stamina

from project_chat.common.config import ChatSettings
from project_chat.common.errors import AGENT_ERROR, UpstreamCallError
from project_chat.llm import (
    AgentProcessCaller,
    LiteLLMCaller,
    ResumeHandle,
    TextDelta,
    ToolCallFinished,
    ToolCallStarted,
    TurnCompleted,
    create_model_caller,
    get_temperature,
    is_retryable_error,
    tool_definitions,
)


def _chunk(content=None, tool_calls=None, finish_reason=None, chunk_id="chatcmpl-1"):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(id=chunk_id, choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def _tc(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


async def _astream(chunks):
    for c in chunks:
        yield c


async def _collect(caller, **kwargs):
    params = {"system_prompt": "sys", "messages": [{"role": "user", "content": "hi"}], "tools": [], "max_tokens": 100}
    params.update(kwargs)
    return [e async for e in caller.stream_turn(**params)]


def test_tool_definitions_openai_format():
    defs = tool_definitions([{"name": "project__search_docs", "description": "d", "input_schema": {"type": "object"}}])
    assert defs == [{
        "type": "function",
        "function": {"name": "project__search_docs", "description": "d", "parameters": {"type": "object"}},
    }]


def test_retryable_error_patterns():
    assert is_retryable_error(Exception("503 Service Unavailable"))
    assert is_retryable_error(Exception("Rate limit exceeded"))
    assert not is_retryable_error(Exception("401 invalid api key"))
    assert get_temperature("o3-mini") == 1.0
    assert get_temperature("claude-sonnet-4-20250514") == 0.1


@pytest.mark.asyncio
async def test_litellm_caller_streams_text_then_completes():
    stream = _astream([_chunk("Hello"), _chunk(" there"), _chunk(finish_reason="stop")])
    with patch("project_chat.llm.llm.litellm.acompletion", new=AsyncMock(return_value=stream)) as mock:
        events = await _collect(LiteLLMCaller("gpt-4o-mini", api_key="k"))

    assert events[:2] == [TextDelta(text="Hello"), TextDelta(text=" there")]
    assert events[-1] == TurnCompleted(message_id="chatcmpl-1", stop_reason="end_turn", text="Hello there")
    kwargs = mock.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
    assert kwargs["api_key"] == "k"
    assert "tools" not in kwargs


@pytest.mark.asyncio
async def test_litellm_caller_accumulates_tool_call_fragments():
    stream = _astream([
        _chunk("Let me look."),
        _chunk(tool_calls=[_tc(0, "call_1", "project__search_docs", '{"qu')]),
        _chunk(tool_calls=[_tc(0, arguments='ery": "install"}')]),
        _chunk(tool_calls=[_tc(1, "call_2", "project__list_files", "{}")]),
        _chunk(finish_reason="tool_calls"),
    ])
    tools = [{"name": "project__search_docs", "description": "d", "input_schema": {"type": "object"}}]
    with patch("project_chat.llm.llm.litellm.acompletion", new=AsyncMock(return_value=stream)) as mock:
        events = await _collect(LiteLLMCaller("gpt-4o-mini"), tools=tools)

    started = [e for e in events if isinstance(e, ToolCallStarted)]
    assert [(e.id, e.name) for e in started] == [("call_1", "project__search_docs"), ("call_2", "project__list_files")]
    done = events[-1]
    assert done.stop_reason == "tool_use"
    assert [tc.arguments for tc in done.tool_calls] == ['{"query": "install"}', "{}"]
    assert done.tool_calls[0].parsed_arguments() == {"query": "install"}
    assert mock.call_args.kwargs["tool_choice"] == "auto"


@pytest.mark.asyncio
async def test_litellm_caller_maps_length_to_max_tokens():
    stream = _astream([_chunk("partial"), _chunk(finish_reason="length")])
    with patch("project_chat.llm.llm.litellm.acompletion", new=AsyncMock(return_value=stream)):
        events = await _collect(LiteLLMCaller("gpt-4o-mini"))
    assert events[-1].stop_reason == "max_tokens"


@pytest.mark.asyncio
async def test_litellm_caller_retries_opening_the_stream():
    stamina.set_testing(True, attempts=3)
    stream = _astream([_chunk("ok"), _chunk(finish_reason="stop")])
    mock = AsyncMock(side_effect=[Exception("503 service unavailable"), stream])
    with patch("project_chat.llm.llm.litellm.acompletion", new=mock):
        events = await _collect(LiteLLMCaller("gpt-4o-mini"))
    assert mock.call_count == 2
    assert events[-1].text == "ok"


@pytest.mark.asyncio
async def test_litellm_caller_does_not_retry_auth_errors():
    stamina.set_testing(True, attempts=3)
    mock = AsyncMock(side_effect=Exception("401 invalid api key"))
    with patch("project_chat.llm.llm.litellm.acompletion", new=mock):
        with pytest.raises(Exception, match="invalid api key"):
            await _collect(LiteLLMCaller("gpt-4o-mini"))
    assert mock.call_count == 1


AGENT_SCRIPT = textwrap.dedent(
    """
    import json, sys
    args = sys.argv[1:]
    prompt = args[-1]
    resume = args[args.index("--resume") + 1] if "--resume" in args else None
    def emit(obj):
        print(json.dumps(obj), flush=True)
    emit({"type": "system", "subtype": "init", "session_id": resume or "agent-sess-1"})
    print("not json")
    emit({"type": "assistant", "message": {"id": "msg_a", "content": [
        {"type": "text", "text": "Looking. "},
        {"type": "tool_use", "id": "tu_1", "name": "Grep", "input": {"pattern": "install"}},
    ]}})
    emit({"type": "user", "message": {"content": [{"type": "tool_result", "tool_use_id": "tu_1", "content": "x"}]}})
    emit({"type": "assistant", "message": {"id": "msg_b", "content": [{"type": "text", "text": "Answer: " + prompt}]}})
    emit({"type": "result", "is_error": False, "result": "ok", "session_id": "agent-sess-1"})
    """
)


def _agent(tmp_path, script):
    path = tmp_path / "agent.py"
    path.write_text(script)
    return AgentProcessCaller([sys.executable, str(path)], allowed_tools=())


@pytest.mark.asyncio
async def test_agent_process_streams_ndjson(tmp_path):
    caller = _agent(tmp_path, AGENT_SCRIPT)
    assert caller.uses_resume_handle and caller.error_code == AGENT_ERROR

    events = await _collect(caller, messages=[{"role": "user", "content": "how to install?"}])

    assert events[0] == ResumeHandle(handle="agent-sess-1")
    assert events[1] == TextDelta(text="Looking. ")
    assert events[2] == ToolCallStarted(id="tu_1", name="Grep", input={"pattern": "install"})
    assert events[3] == ToolCallFinished(id="tu_1", name="Grep")
    assert events[4] == TextDelta(text="Answer: how to install?")
    assert events[5] == TurnCompleted(message_id="msg_b", stop_reason="end_turn", text="Looking. Answer: how to install?")


@pytest.mark.asyncio
async def test_agent_process_passes_resume_handle(tmp_path):
    caller = _agent(tmp_path, AGENT_SCRIPT)
    events = await _collect(caller, resume_handle="prev-handle")
    assert events[0] == ResumeHandle(handle="prev-handle")
    assert caller.build_args("p", "", "h")[-3:] == ["--resume", "h", "p"]


@pytest.mark.asyncio
async def test_agent_process_error_result_raises(tmp_path):
    script = 'import json\nprint(json.dumps({"type": "result", "is_error": True, "result": "quota exceeded"}))\n'
    with pytest.raises(UpstreamCallError, match="quota exceeded") as exc:
        await _collect(_agent(tmp_path, script))
    assert exc.value.code == AGENT_ERROR


@pytest.mark.asyncio
async def test_agent_process_exit_without_result_reports_stderr(tmp_path):
    script = 'import sys\nsys.stderr.write("unknown flag")\nsys.exit(3)\n'
    with pytest.raises(UpstreamCallError, match="code 3.*unknown flag"):
        await _collect(_agent(tmp_path, script))


@pytest.mark.asyncio
async def test_agent_process_missing_binary(tmp_path):
    caller = AgentProcessCaller([str(tmp_path / "no-such-agent")])
    with pytest.raises(UpstreamCallError, match="Could not start"):
        await _collect(caller)


def test_create_model_caller_picks_strategy():
    assert isinstance(create_model_caller(ChatSettings()), LiteLLMCaller)
    caller = create_model_caller(ChatSettings(strategy="agent", agent_command=["my-agent"]))
    assert isinstance(caller, AgentProcessCaller)
    assert caller.command == ["my-agent"]
