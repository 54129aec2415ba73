# chat.py: project chat endpoints (streaming chat, session clear, tools, re-index).

import contextlib
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

import project_chat as pc

logger = logging.getLogger(__name__)

chat_router = APIRouter(tags=["chat"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


class ToolDeclaration(BaseModel):
    name: str = Field(..., description="Namespaced tool name, <registry>__<tool>")
    description: str
    input_schema: dict[str, Any]


class ReindexResponse(BaseModel):
    file_counts: dict[str, int] = Field(..., description="Registry key -> indexed file count")


def get_chat_handler(request: Request) -> pc.agent.ChatHandler:
    return request.app.state.chat_handler


@chat_router.post("/v0/chat")
async def post_chat(
    body: Any = Body(...),
    handler: pc.agent.ChatHandler = Depends(get_chat_handler),
):
    """
    Stream one chat turn as text/event-stream.
    Invalid input is reported in-band as an error event, not as an HTTP error.
    """

    async def generate_sse():
        events = handler.handle_message(body)
        async with contextlib.aclosing(events):
            try:
                async for event in events:
                    yield pc.protocol.serialize_event(event)
            except Exception as e:
                logger.exception("Chat stream failed")
                yield pc.protocol.serialize_event(
                    pc.protocol.error_event(str(e) or "Chat failed", code=handler.caller.error_code)
                )

    return StreamingResponse(generate_sse(), media_type="text/event-stream", headers=SSE_HEADERS)


@chat_router.delete("/v0/chat/sessions/{session_id}", status_code=204)
async def delete_chat_session(
    session_id: str,
    handler: pc.agent.ChatHandler = Depends(get_chat_handler),
):
    """Clear a visitor's conversation history."""
    await handler.clear_session(session_id)
    return Response(status_code=204)


@chat_router.get("/v0/chat/tools", response_model=list[ToolDeclaration])
async def get_chat_tools(handler: pc.agent.ChatHandler = Depends(get_chat_handler)):
    """Tools offered to the model (page tools are added per request and not listed)."""
    return handler.registry.declarations()


@chat_router.post("/v0/chat/reindex", response_model=ReindexResponse)
def post_reindex(handler: pc.agent.ChatHandler = Depends(get_chat_handler)):
    """Re-index every project registry, e.g. after a deploy.

    Plain def: the directory walk runs in the threadpool, not on the event loop.
    """
    counts = {}
    for key, registry in handler.registry.registries.items():
        if isinstance(registry, pc.agent.ProjectRegistry):
            counts[key] = registry.reindex()
    return ReindexResponse(file_counts=counts)
