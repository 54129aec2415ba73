"""
Builds the system message for one chat request: the configured prompt (or the
registries' own prompts), then a short note on the page the visitor is on.
"""
from __future__ import annotations

import logging

from ..protocol.models import RequestContext
from .tool_registry import NamespacedRegistry

logger = logging.getLogger(__name__)

FALLBACK_PROMPT = "You are a helpful assistant. Use the available tools to answer questions accurately."


def build_system_prompt(
    registry: NamespacedRegistry,
    system_prompt: str | None = None,
    context: RequestContext | None = None,
    page_tools: bool = True,
) -> str:
    """
    Args:
        registry: Combined registry; its members' system prompts are used when system_prompt is unset
        system_prompt: Explicit prompt from configuration
        context: Request context, if the client sent one
        page_tools: Whether page tools are offered alongside the page note

    Returns:
        str: The system message
    """
    if system_prompt:
        parts = [system_prompt]
    else:
        parts = [r.system_prompt for r in registry.registries.values() if r.system_prompt]
        if not parts:
            parts = [FALLBACK_PROMPT]

    if context is not None and context.page is not None:
        page = context.page
        note = f'The user is currently viewing "{page.title}" ({page.pathname}).'
        if page_tools:
            note += " Use the page tools when the question is about what they are looking at."
        parts.append(note)
    return "\n\n".join(parts)
