"""
ChatHandler: one ChatRequest in, one ordered stream of ChatEvents out.

Per request: validate -> load or create the session -> run the tool loop ->
persist the session (exactly once) -> done. A per-session lock makes the
session read/write around one request a critical section.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import weakref
from typing import Any, AsyncIterator, Callable

from pydantic import ValidationError

from ..common.config import ChatSettings
from ..common.errors import INPUT_TOO_LONG, INVALID_INPUT, InputValidationError
from ..common.id import create_session_id
from ..llm.caller import ModelCaller
from ..llm.factory import create_model_caller
from ..protocol.events import ChatEvent, ErrorEvent, done_event, error_event, session_event
from ..protocol.models import ChatRequest
from .agent_loop import LoopStatus, ToolLoopState, run_tool_loop, sanitize_history
from .session import MemorySessionStore, RedisSessionStore, SessionData, SessionStore
from .system_prompt import build_system_prompt
from .tool_registry import NamespacedRegistry, Tool, ToolRegistry
from .tools.page_tools import create_page_context_registry
from .tools.project_tools import ProjectRegistry, create_project_registry

logger = logging.getLogger(__name__)

PAGE_REGISTRY_KEY = "page"
PROJECT_REGISTRY_KEY = "project"


def _unreachable_tools(registry: NamespacedRegistry) -> list[str]:
    """Tools a caller without tool support would silently drop.

    A ProjectRegistry's built-ins are covered by the agent's own file tools;
    custom tools and other registries are not.
    """
    names = []
    for key, r in registry.registries.items():
        if isinstance(r, ProjectRegistry):
            own = r.custom_tool_names
        else:
            own = [t.name for t in r.tools]
        names.extend(f"{key}{registry.separator}{n}" for n in own)
    return names


def _page_prefixed(request: ChatRequest, message: str) -> str:
    page = request.context.page if request.context else None
    if page is None:
        return message
    return f'[User is on: "{page.title}" at {page.pathname}]\n\n{message}'


class ChatHandler:
    def __init__(
        self,
        caller: ModelCaller,
        registries: dict[str, ToolRegistry] | NamespacedRegistry,
        *,
        system_prompt: str | None = None,
        max_turns: int = 10,
        max_tokens: int = 4096,
        max_history_messages: int = 20,
        max_input_length: int = 4000,
        session_store: SessionStore | None = None,
        on_message_start: Callable[[str, str], Any] | None = None,
        on_message_end: Callable[[str], Any] | None = None,
        on_error: Callable[[str, str, str | None], Any] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.caller = caller
        if isinstance(registries, NamespacedRegistry):
            self.registry = registries
        else:
            self.registry = NamespacedRegistry(registries)
        if not caller.accepts_tools:
            unreachable = _unreachable_tools(self.registry)
            if unreachable:
                raise ValueError(
                    f"{type(caller).__name__} runs its own tools and cannot be offered: {', '.join(unreachable)}"
                )
        self.system_prompt = system_prompt
        self.max_turns = max_turns
        self.max_tokens = max_tokens
        self.max_history_messages = max_history_messages
        self.max_input_length = max_input_length
        self.session_store = session_store if session_store is not None else MemorySessionStore(clock=clock)
        self.on_message_start = on_message_start
        self.on_message_end = on_message_end
        self.on_error = on_error
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _session_lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _call_hook(self, hook: Callable | None, *args) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            # Hooks are observers; a failing hook never fails the chat
            logger.exception(f"Chat hook {getattr(hook, '__name__', hook)} failed")

    def validate(self, request: ChatRequest | dict) -> tuple[ChatRequest, str]:
        """Returns (request, message). Raises InputValidationError."""
        if not isinstance(request, ChatRequest):
            try:
                request = ChatRequest.model_validate(request)
            except ValidationError as e:
                raise InputValidationError(f"Invalid request: {e.errors()[0].get('msg', 'invalid')}", INVALID_INPUT) from e
        message = request.message
        if not isinstance(message, str) or not message.strip():
            raise InputValidationError("Message is required", INVALID_INPUT)
        if len(message) > self.max_input_length:
            raise InputValidationError(
                f"Message exceeds {self.max_input_length} characters", INPUT_TOO_LONG
            )
        return request, message

    async def handle_message(self, request: ChatRequest | dict) -> AsyncIterator[ChatEvent]:
        """
        Stream the events for one chat request.

        Yields session, then content/tool events, then done. Validation failures
        yield a single error event and touch no session. A failed model call
        yields error instead of done.
        """
        try:
            request, message = self.validate(request)
        except InputValidationError as e:
            logger.info(f"Rejected chat request: {e.code}")
            self._call_hook(self.on_error, e.code, e.message, None)
            yield error_event(e.message, code=e.code)
            return

        session_id = request.session_id or create_session_id()
        lock = self._session_lock(session_id)
        async with lock:
            run = self._run(request, message, session_id)
            async with contextlib.aclosing(run):
                async for event in run:
                    yield event

    async def _run(self, request: ChatRequest, message: str, session_id: str) -> AsyncIterator[ChatEvent]:
        now = self._clock()
        session = await self.session_store.get(session_id)
        if session is None:
            logger.info(f"Starting chat session {session_id}")
            session = SessionData.new(session_id, now)
        session.message_count += 1
        session.last_active_at = max(now, session.created_at)

        yield session_event(session_id)
        self._call_hook(self.on_message_start, session_id, message)

        registry = self.registry
        accepts_tools = self.caller.accepts_tools
        if request.context is not None and accepts_tools:
            registry = registry.with_registry(PAGE_REGISTRY_KEY, create_page_context_registry(request.context))

        uses_handle = self.caller.uses_resume_handle
        previous = [] if uses_handle else list(session.history or [])
        state = ToolLoopState(
            messages=[*previous, {"role": "user", "content": _page_prefixed(request, message)}],
            resume_handle=session.resume_handle if uses_handle else None,
        )
        system_prompt = build_system_prompt(registry, self.system_prompt, request.context, page_tools=accepts_tools)

        loop = run_tool_loop(
            self.caller,
            state,
            registry,
            system_prompt=system_prompt,
            max_turns=self.max_turns,
            max_tokens=self.max_tokens,
        )
        try:
            async with contextlib.aclosing(loop):
                async for event in loop:
                    if isinstance(event, ErrorEvent):
                        self._call_hook(self.on_error, event.data.code, event.data.message, session_id)
                    yield event
        except (GeneratorExit, asyncio.CancelledError):
            logger.info(f"Chat stream for session {session_id} stopped by the client")
            await self._save(session, state, keep_turn=True)
            raise

        if state.status == LoopStatus.ERROR:
            await self._save(session, state, keep_turn=False)
            return

        await self._save(session, state, keep_turn=True)
        self._call_hook(self.on_message_end, session_id)
        yield done_event(session_id)

    async def _save(self, session: SessionData, state: ToolLoopState, keep_turn: bool) -> None:
        """Single write per request. keep_turn=False keeps the previous history/handle."""
        if keep_turn:
            if self.caller.uses_resume_handle:
                session.resume_handle = state.resume_handle or session.resume_handle
            else:
                trimmed = state.messages[-self.max_history_messages:] if self.max_history_messages > 0 else []
                session.history = sanitize_history(trimmed)
        await self.session_store.set(session.session_id, session)

    async def clear_session(self, session_id: str) -> None:
        await self.session_store.delete(session_id)
        logger.info(f"Cleared chat session {session_id}")


def create_session_store(settings: ChatSettings) -> SessionStore:
    if settings.redis_url:
        logger.info("Using Redis session store")
        return RedisSessionStore.from_url(settings.redis_url, max_age_seconds=settings.session_max_age_seconds)
    return MemorySessionStore(max_age_seconds=settings.session_max_age_seconds)


def create_chat_handler(
    settings: ChatSettings,
    *,
    caller: ModelCaller | None = None,
    session_store: SessionStore | None = None,
    custom_tools: list[Tool] | None = None,
    **hooks,
) -> ChatHandler:
    """
    Wire a ChatHandler from settings: model strategy, project registry, session store.

    Args:
        settings: Chat settings, e.g. ChatSettings.from_env()
        caller: Overrides the strategy chosen from settings
        session_store: Overrides the store chosen from settings
        custom_tools: Extra tools for the project registry
        **hooks: on_message_start / on_message_end / on_error

    Returns:
        ChatHandler
    """
    project = create_project_registry(
        settings.index,
        project_name=settings.project_name,
        project_description=settings.project_description,
        custom_tools=custom_tools,
    )
    return ChatHandler(
        caller or create_model_caller(settings),
        {PROJECT_REGISTRY_KEY: project},
        system_prompt=settings.system_prompt,
        max_turns=settings.max_turns,
        max_tokens=settings.max_tokens,
        max_history_messages=settings.max_history_messages,
        max_input_length=settings.max_input_length,
        session_store=session_store or create_session_store(settings),
        **hooks,
    )
