"""
Project tools: search and read the indexed docs and source code.
Handlers close over one ProjectIndex; re-indexing swaps its snapshot in place.
"""
from __future__ import annotations

import logging
from typing import Any

from ...common.config import IndexConfig
from ...common.errors import ToolExecutionError
from ...index import ProjectIndex, extract_snippet, search_index
from ..tool_registry import Tool, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

README_MAX_CHARS = 3000
API_SPEC_PREVIEW_LINES = 50
MAX_CANDIDATE_PATHS = 20
DOC_SNIPPET_LINES = 3
CODE_SNIPPET_LINES = 5

_QUERY_SCHEMA = {
    "type": "object",
    "properties": {"query": {"type": "string", "description": "Keywords to search for"}},
    "required": ["query"],
}


def _format_results(files, query: str, context_lines: int) -> str:
    blocks = []
    for f in files:
        snippet = extract_snippet(f.content, query, context_lines)
        blocks.append(f"### {f.path}\n```\n{snippet}\n```")
    return "\n\n".join(blocks)


def _query_param(params: dict[str, Any]) -> str:
    query = params.get("query")
    if not isinstance(query, str):
        raise ToolExecutionError("query must be a string")
    return query


def default_system_prompt(project_name: str, project_description: str | None = None) -> str:
    parts = [f"You are a helpful assistant for {project_name}."]
    if project_description:
        parts.append(project_description)
    parts.append(
        "Answer questions about the project using its documentation and source code. "
        "Search before answering, cite the files you used, and say so when the project "
        "does not cover something instead of guessing."
    )
    return "\n\n".join(parts)


class ProjectRegistry(ToolRegistry):
    """ToolRegistry over a ProjectIndex: five built-in tools plus any custom ones."""

    def __init__(
        self,
        index: ProjectIndex,
        name: str = "project",
        custom_tools: list[Tool] | None = None,
        system_prompt: str | None = None,
    ):
        self.index = index
        self.custom_tool_names = [t.name for t in custom_tools or []]
        builtins = [
            Tool(
                name="search_docs",
                description="Search project documentation for relevant content. Returns matching excerpts with file paths.",
                input_schema=_QUERY_SCHEMA,
                handler=self.search_docs,
            ),
            Tool(
                name="search_code",
                description="Search project source code for relevant content. Returns matching code snippets with file paths.",
                input_schema=_QUERY_SCHEMA,
                handler=self.search_code,
            ),
            Tool(
                name="read_file",
                description="Read the full contents of a specific file in the project.",
                input_schema={
                    "type": "object",
                    "properties": {"path": {"type": "string", "description": "File path relative to the project root"}},
                    "required": ["path"],
                },
                handler=self.read_file,
            ),
            Tool(
                name="list_files",
                description="List all indexed project files, optionally filtered by a name substring.",
                input_schema={
                    "type": "object",
                    "properties": {"filter": {"type": "string", "description": "Optional file name substring"}},
                },
                handler=self.list_files,
            ),
            Tool(
                name="get_project_summary",
                description="Get a high-level summary of the project: indexed file counts, README and API spec preview.",
                handler=self.get_project_summary,
            ),
        ]
        super().__init__(name, [*builtins, *(custom_tools or [])], system_prompt=system_prompt)

    @property
    def file_count(self) -> int:
        return self.index.file_count

    def reindex(self) -> int:
        return self.index.reindex()

    async def search_docs(self, params: dict[str, Any]) -> ToolResult:
        query = _query_param(params)
        docs = self.index.docs()
        if not docs:
            return ToolResult.text("No documentation files have been indexed.")
        results = search_index(docs, query)
        if not results:
            return ToolResult.text(f'No documentation matches for: "{query}"')
        return ToolResult.text(_format_results(results, query, DOC_SNIPPET_LINES))

    async def search_code(self, params: dict[str, Any]) -> ToolResult:
        query = _query_param(params)
        code = self.index.code()
        if not code:
            return ToolResult.text("No source code files have been indexed.")
        results = search_index(code, query)
        if not results:
            return ToolResult.text(f'No code matches for: "{query}"')
        return ToolResult.text(_format_results(results, query, CODE_SNIPPET_LINES))

    async def read_file(self, params: dict[str, Any]) -> ToolResult:
        path = params.get("path")
        if not isinstance(path, str) or not path:
            return ToolResult.error("path is required")
        f = self.index.find(path)
        if f is None:
            candidates = [x.path for x in self.index.files[:MAX_CANDIDATE_PATHS]]
            listing = "\n".join(f"- {p}" for p in candidates) or "(no files indexed)"
            return ToolResult.error(f"File not found: {path}\n\nAvailable files:\n{listing}")
        return ToolResult.text(f"# {f.path}\n\n```\n{f.content}\n```")

    async def list_files(self, params: dict[str, Any]) -> ToolResult:
        name_filter = params.get("filter") or ""
        files = self.index.files
        if name_filter:
            lower = name_filter.lower()
            files = tuple(f for f in files if lower in f.path.lower())
        if not files:
            return ToolResult.text(f'No files matching: "{name_filter}"' if name_filter else "No files indexed.")

        docs = [f.path for f in files if f.category == "doc"]
        code = [f.path for f in files if f.category == "code"]
        parts = []
        if docs:
            parts.append(f"## Documentation ({len(docs)})\n" + "\n".join(f"- {p}" for p in docs))
        if code:
            parts.append(f"## Source Code ({len(code)})\n" + "\n".join(f"- {p}" for p in code))
        return ToolResult.text("\n\n".join(parts))

    async def get_project_summary(self, params: dict[str, Any]) -> ToolResult:
        files = self.index.files
        docs = self.index.docs()
        parts = [f"**Indexed files:** {len(files)} total ({len(docs)} docs, {len(files) - len(docs)} code)"]

        readme = next((f for f in files if f.path.lower() == "readme.md"), None)
        if readme is not None:
            content = readme.content
            if len(content) > README_MAX_CHARS:
                content = content[:README_MAX_CHARS] + "\n\n... (truncated)"
            parts.append(f"## README\n\n{content}")

        api_spec = self.index.read_api_spec()
        if api_spec:
            preview = "\n".join(api_spec.split("\n")[:API_SPEC_PREVIEW_LINES])
            parts.append(f"## API Spec (preview)\n```\n{preview}\n```")
        return ToolResult.text("\n\n".join(parts))


def create_project_registry(
    config: IndexConfig | None = None,
    *,
    name: str = "project",
    project_name: str = "this project",
    project_description: str | None = None,
    system_prompt: str | None = None,
    custom_tools: list[Tool] | None = None,
    index: ProjectIndex | None = None,
) -> ProjectRegistry:
    """
    Build the index and wrap it in a ProjectRegistry.

    Args:
        config: Index settings; ignored when index is given
        name: Registry name (the namespace key is chosen by the caller)
        project_name: Used for the default system prompt
        project_description: Used for the default system prompt
        system_prompt: Overrides the generated prompt
        custom_tools: Extra tools added after the built-ins
        index: Pre-built index to reuse

    Returns:
        ProjectRegistry
    """
    index = index or ProjectIndex(config)
    prompt = system_prompt or default_system_prompt(project_name, project_description)
    registry = ProjectRegistry(index, name=name, custom_tools=custom_tools, system_prompt=prompt)
    logger.info(f"Project registry {name!r} ready: {registry.file_count} files, {len(registry.tools)} tools")
    return registry
