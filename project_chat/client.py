"""
Async HTTP client for a project chat server.

    async with ChatClient("http://localhost:8000") as client:
        async for event in client.stream_chat("How do I install this?"):
            ...
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx

from .protocol.events import ChatEvent
from .protocol.models import ChatRequest, RequestContext
from .protocol.sse import iter_events

logger = logging.getLogger(__name__)

CHAT_PATH = "/v0/chat"


class ChatClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        # Last session id the server announced; reused by stream_chat
        self.session_id: str | None = None

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def stream_chat(
        self,
        message: str,
        *,
        session_id: str | None = None,
        context: RequestContext | dict[str, Any] | None = None,
    ) -> AsyncIterator[ChatEvent]:
        """
        Send one message and yield the server's events as they arrive.

        Args:
            message: The user's message
            session_id: Session to continue; defaults to the last one seen
            context: Page context for this message

        Yields:
            ChatEvent
        """
        if isinstance(context, dict):
            context = RequestContext.model_validate(context)
        request = ChatRequest(message=message, session_id=session_id or self.session_id, context=context)
        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)

        async with self._client.stream(
            "POST", CHAT_PATH, json=payload, headers={"Accept": "text/event-stream"}
        ) as response:
            response.raise_for_status()
            async for event in iter_events(response.aiter_bytes()):
                if event.event in ("session", "done"):
                    self.session_id = event.data.session_id
                yield event

    async def chat(self, message: str, **kwargs) -> str:
        """Send a message and return the concatenated answer text. Raises on an error event."""
        parts = []
        async for event in self.stream_chat(message, **kwargs):
            if event.event == "content_delta":
                parts.append(event.data.text)
            elif event.event == "error":
                raise RuntimeError(f"{event.data.code or 'ERROR'}: {event.data.message}")
        return "".join(parts)

    async def clear_session(self, session_id: str | None = None) -> None:
        session_id = session_id or self.session_id
        if not session_id:
            return
        response = await self._client.delete(f"{CHAT_PATH}/sessions/{session_id}")
        response.raise_for_status()
        if session_id == self.session_id:
            self.session_id = None
