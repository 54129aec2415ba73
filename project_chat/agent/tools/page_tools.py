"""
Page tools: what the visitor is looking at, built from one request's context.
"""
from __future__ import annotations

import json
from typing import Any

from ...protocol.models import RequestContext
from ..tool_registry import Tool, ToolRegistry, ToolResult


def create_page_context_registry(context: RequestContext | None, name: str = "page") -> ToolRegistry:
    page = context.page if context else None
    content = context.page_content if context else None
    metadata = context.metadata if context else None

    async def get_current_page(params: dict[str, Any]) -> ToolResult:
        if page is None:
            return ToolResult.text("No page context available. The user has not provided page information.")
        lines = [f"URL: {page.url}", f"Title: {page.title}", f"Path: {page.pathname}"]
        if page.referrer:
            lines.append(f"Referrer: {page.referrer}")
        if metadata:
            lines.append(f"\nMetadata: {json.dumps(metadata, indent=2, default=str)}")
        return ToolResult.text("\n".join(lines))

    async def get_page_content(params: dict[str, Any]) -> ToolResult:
        if content is None:
            return ToolResult.text("No page content available. The frontend has not sent page content extraction.")
        parts = []
        if content.headings:
            parts.append("## Headings\n" + "\n".join(f"- {h}" for h in content.headings))
        if content.text:
            parts.append("## Text Content\n" + content.text)
        if content.code_blocks:
            parts.append("## Code Blocks\n" + "\n\n".join(f"```\n{c}\n```" for c in content.code_blocks))
        return ToolResult.text("\n\n".join(parts) or "Page content is empty.")

    return ToolRegistry(
        name,
        [
            Tool(
                name="get_current_page",
                description="Get information about the page the user is currently viewing: URL, title, pathname.",
                handler=get_current_page,
            ),
            Tool(
                name="get_page_content",
                description="Get the headings, text content and code blocks of the page the user is viewing.",
                handler=get_page_content,
            ),
        ],
    )
