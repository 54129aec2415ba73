"""
Tool registries: named sets of schema-declared async tools.

ToolRegistry.call_tool never raises. Unknown tools, bad arguments and handler
failures all come back as error-flagged ToolResults so the tool loop can feed
them to the model as data.

NamespacedRegistry combines registries under the model-facing tool list as
`<key>__<tool>` and reverses the prefix at dispatch time.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..common.errors import ToolExecutionError

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "__"
TOOL_ERROR_PREFIX = "Tool error: "


class ToolResult(BaseModel):
    text_segments: list[str] = Field(default_factory=list)
    is_error: bool = False

    @model_validator(mode="after")
    def _error_has_text(self) -> "ToolResult":
        if self.is_error and not any(s.strip() for s in self.text_segments):
            raise ValueError("An error ToolResult must describe the failure")
        return self

    @classmethod
    def text(cls, *segments: str) -> "ToolResult":
        return cls(text_segments=list(segments))

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(text_segments=[message or "Tool failed"], is_error=True)

    def joined(self) -> str:
        return "\n".join(self.text_segments)

    def model_content(self) -> str:
        """Text fed back to the model; failures carry the TOOL_ERROR_PREFIX marker."""
        text = self.joined()
        return f"{TOOL_ERROR_PREFIX}{text}" if self.is_error else text


ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


class Tool(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    input_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    handler: ToolHandler

    def declaration(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "input_schema": self.input_schema}


def _parse_arguments(arguments: str | dict | None) -> dict[str, Any]:
    """arguments: JSON string (from the model) or dict. Raises ValueError if not a JSON object."""
    if arguments is None:
        return {}
    if isinstance(arguments, str):
        try:
            params = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON arguments: {e}") from e
    else:
        params = arguments
    if not isinstance(params, dict):
        raise ValueError("Tool arguments must be a JSON object")
    return params


class ToolRegistry:
    def __init__(self, name: str, tools: list[Tool] | None = None, system_prompt: str | None = None):
        self.name = name
        self.system_prompt = system_prompt
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.add_tool(tool)

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    def add_tool(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Duplicate tool name in registry {self.name!r}: {tool.name}")
        self._tools[tool.name] = tool

    def declarations(self) -> list[dict[str, Any]]:
        return [t.declaration() for t in self._tools.values()]

    async def call_tool(self, name: str, arguments: str | dict | None = None) -> ToolResult:
        """Execute a tool by exact name. Always returns a ToolResult."""
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Unknown tool requested from {self.name}: {name}")
            return ToolResult.error(f"Unknown tool: {name}")
        try:
            params = _parse_arguments(arguments)
        except ValueError as e:
            return ToolResult.error(str(e))
        try:
            result = await tool.handler(params)
        except ToolExecutionError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResult.error(str(e))
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return ToolResult.error(str(e) or type(e).__name__)
        if not isinstance(result, ToolResult):
            logger.error(f"Tool {name} returned {type(result).__name__} instead of a ToolResult")
            return ToolResult.error(f"Tool {name} returned an invalid result")
        return result


class NamespacedRegistry:
    """Several registries exposed as one tool list, names prefixed by registry key."""

    def __init__(self, registries: dict[str, ToolRegistry], separator: str = DEFAULT_SEPARATOR):
        for key in registries:
            if not key or separator in key:
                raise ValueError(f"Invalid registry key {key!r}")
        self.registries = dict(registries)
        self.separator = separator

    def with_registry(self, key: str, registry: ToolRegistry) -> "NamespacedRegistry":
        return NamespacedRegistry({**self.registries, key: registry}, self.separator)

    def split_name(self, name: str) -> tuple[str, str]:
        """'project__search_docs' -> ('project', 'search_docs'). No separator -> ('', name)."""
        key, sep, tool = name.partition(self.separator)
        if not sep:
            return "", name
        return key, tool

    def declarations(self) -> list[dict[str, Any]]:
        out = []
        for key, registry in self.registries.items():
            for decl in registry.declarations():
                out.append({**decl, "name": f"{key}{self.separator}{decl['name']}"})
        return out

    async def call_tool(self, name: str, arguments: str | dict | None = None) -> ToolResult:
        key, tool_name = self.split_name(name)
        registry = self.registries.get(key)
        if registry is None:
            logger.warning(f"Tool call for unknown registry: {name}")
            return ToolResult.error(f"Unknown registry: {key or name}")
        return await registry.call_tool(tool_name, arguments)
