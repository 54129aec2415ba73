# Project chat agent: tools, loop, sessions, system prompt, request handler.
# Used by app/routes/chat.py.

from .tool_registry import Tool, ToolResult, ToolRegistry, NamespacedRegistry
from .tools import ProjectRegistry, create_project_registry, create_page_context_registry
from .session import SessionData, SessionStore, MemorySessionStore, RedisSessionStore
from .system_prompt import build_system_prompt
from .agent_loop import LoopStatus, ToolLoopState, run_tool_loop, sanitize_history
from .handler import ChatHandler, create_chat_handler, create_session_store

__all__ = [
    "Tool",
    "ToolResult",
    "ToolRegistry",
    "NamespacedRegistry",
    "ProjectRegistry",
    "create_project_registry",
    "create_page_context_registry",
    "SessionData",
    "SessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "build_system_prompt",
    "LoopStatus",
    "ToolLoopState",
    "run_tool_loop",
    "sanitize_history",
    "ChatHandler",
    "create_chat_handler",
    "create_session_store",
]
