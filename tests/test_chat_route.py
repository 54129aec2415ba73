"""Tests for the FastAPI chat routes over httpx's ASGI transport."""
import threading

import httpx
import pytest

from app.main import create_app
from fakes import ScriptedCaller, text_turn, tool_turn
from project_chat.agent import ChatHandler, MemorySessionStore, ProjectRegistry, create_project_registry
from project_chat.protocol import parse_events


@pytest.fixture
def store():
    return MemorySessionStore()


def _app(index_config, store, turns):
    project = create_project_registry(index_config, project_name="mylib")
    handler = ChatHandler(ScriptedCaller(turns), {"project": project}, session_store=store)
    return create_app(handler)


def _client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_post_chat_streams_sse(index_config, store):
    app = _app(index_config, store, [
        tool_turn(("c1", "project__search_docs", '{"query": "install"}')),
        text_turn("Use npm install mylib."),
    ])
    async with _client(app) as client:
        response = await client.post("/v0/chat", json={"message": "How do I install this?"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-accel-buffering"] == "no"
    assert response.text.startswith("event: session\ndata: {\"sessionId\":")

    events = parse_events(response.text)
    assert [e.event for e in events] == [
        "session", "tool_use_start", "tool_use_end", "content_delta", "message_end", "done",
    ]
    assert events[2].data.tool == "project__search_docs"


@pytest.mark.asyncio
async def test_post_chat_invalid_input_is_in_band(index_config, store):
    app = _app(index_config, store, [])
    async with _client(app) as client:
        response = await client.post("/v0/chat", json={"message": 123})

    assert response.status_code == 200
    events = parse_events(response.text)
    assert len(events) == 1
    assert events[0].data.code == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_delete_session(index_config, store):
    app = _app(index_config, store, [text_turn("hi")])
    async with _client(app) as client:
        await client.post("/v0/chat", json={"message": "hi", "sessionId": "s1"})
        assert await store.get("s1") is not None

        response = await client.delete("/v0/chat/sessions/s1")
        assert response.status_code == 204
        assert await store.get("s1") is None

        assert (await client.delete("/v0/chat/sessions/never")).status_code == 204


@pytest.mark.asyncio
async def test_list_tools_and_reindex(index_config, store, project_dir):
    app = _app(index_config, store, [])
    async with _client(app) as client:
        tools = (await client.get("/v0/chat/tools")).json()
        assert [t["name"] for t in tools][:2] == ["project__search_docs", "project__search_code"]

        (project_dir / "docs" / "new.md").write_text("# New\n")
        response = await client.post("/v0/chat/reindex")

    assert response.json() == {"file_counts": {"project": 4}}


@pytest.mark.asyncio
async def test_reindex_runs_off_the_event_loop(index_config, store, monkeypatch):
    threads = []
    original = ProjectRegistry.reindex

    def recording_reindex(self):
        threads.append(threading.get_ident())
        return original(self)

    monkeypatch.setattr(ProjectRegistry, "reindex", recording_reindex)
    app = _app(index_config, store, [])
    async with _client(app) as client:
        response = await client.post("/v0/chat/reindex")

    assert response.json() == {"file_counts": {"project": 3}}
    assert threads and threads[0] != threading.get_ident()
