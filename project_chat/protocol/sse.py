"""
Line-oriented wire format for ChatEvents:

    event: <type>\\n
    data: <single-line JSON>\\n
    \\n

The parser is the inverse. It buffers partial lines across chunks and fires an
event on a blank line once both `event` and `data` were seen. Lines without a
colon (keep-alives, stray text) are ignored.
"""
from __future__ import annotations

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from .events import ChatEvent, build_event

logger = logging.getLogger(__name__)


def _json_dumps_compact(payload: dict) -> str:
    # json.dumps escapes control characters, so the data line never contains a raw newline
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def serialize_event(event: ChatEvent) -> str:
    data = event.data.model_dump(mode="json", by_alias=True)
    payload = {k: v for k, v in data.items() if v is not None}
    return f"event: {event.event}\ndata: {_json_dumps_compact(payload)}\n\n"


def parse_sse_line(line: str) -> tuple[str, str] | None:
    """Split `field: value` on the first colon. Returns None for lines without one."""
    idx = line.find(":")
    if idx == -1:
        return None
    return line[:idx].strip(), line[idx + 1:].strip()


class SSEParser:
    """Incremental parser: feed() text chunks, get back completed events."""

    def __init__(self) -> None:
        self._buffer = ""
        self._event: str | None = None
        self._data: str | None = None

    def feed(self, chunk: str) -> list[ChatEvent]:
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        events: list[ChatEvent] = []
        for raw in lines:
            event = self._handle_line(raw.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> list[ChatEvent]:
        """Treat end of stream as a final line terminator plus blank line."""
        events = self.feed("\n\n") if self._buffer or self._event or self._data else []
        self._buffer = ""
        return events

    def _handle_line(self, line: str) -> ChatEvent | None:
        if line == "":
            return self._dispatch()
        parsed = parse_sse_line(line)
        if parsed is None:
            return None
        field, value = parsed
        if field == "event":
            self._event = value
        elif field == "data":
            self._data = value
        return None

    def _dispatch(self) -> ChatEvent | None:
        event_type, data = self._event, self._data
        self._event = self._data = None
        if event_type is None or data is None:
            return None
        try:
            return build_event(event_type, json.loads(data))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Skipping malformed {event_type!r} event: {e}")
            return None


def parse_events(text: str) -> list[ChatEvent]:
    parser = SSEParser()
    return parser.feed(text) + parser.flush()


async def iter_events(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[ChatEvent]:
    """Async variant for streaming transports (e.g. httpx Response.aiter_text())."""
    parser = SSEParser()
    decoder = codecs.getincrementaldecoder("utf-8")()
    async for chunk in chunks:
        if isinstance(chunk, bytes):
            chunk = decoder.decode(chunk)
        for event in parser.feed(chunk):
            yield event
    for event in parser.flush():
        yield event
