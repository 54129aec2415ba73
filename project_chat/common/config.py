"""
Configuration for indexing and chat handling.
IndexConfig is consumed from external config loading; ChatSettings reads PROJECT_CHAT_* env vars.
"""
from __future__ import annotations

import logging
import os
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DOC_EXTENSIONS = [".md", ".mdx", ".txt", ".rst"]
DEFAULT_CODE_EXTENSIONS = [
    ".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs", ".java",
    ".rb", ".php", ".vue", ".svelte", ".astro", ".css", ".scss",
    ".yaml", ".yml", ".toml", ".json",
]
DEFAULT_EXCLUDE_DIRS = [
    "node_modules", "dist", ".git", "build", ".next", "__pycache__",
    ".venv", "vendor", ".turbo", ".cache", "coverage",
]
DEFAULT_MAX_FILE_SIZE = 100_000
DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _get_int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        logger.warning(f"Ignoring non-integer value for {name}, using {default}")
        return default


def _get_list_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class IndexConfig(BaseModel):
    docs_dir: str | None = Field(default=None, description="Documentation root")
    code_dir: str | None = Field(default=None, description="Source code root")
    doc_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_DOC_EXTENSIONS))
    code_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_CODE_EXTENSIONS))
    exclude_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, ge=0, description="Bytes; larger files are skipped")
    api_spec_path: str | None = Field(default=None, description="Optional OpenAPI/Swagger spec file")


class ChatSettings(BaseModel):
    project_name: str = "this project"
    project_description: str | None = None
    system_prompt: str | None = None
    strategy: Literal["messages", "agent"] = "messages"
    model: str = DEFAULT_MODEL
    api_key: str | None = None
    agent_command: list[str] | None = None
    max_turns: int = 10
    max_tokens: int = 4096
    max_history_messages: int = 20
    max_input_length: int = 4000
    session_max_age_seconds: int = 24 * 60 * 60
    redis_url: str | None = None
    index: IndexConfig = Field(default_factory=IndexConfig)

    @classmethod
    def from_env(cls) -> "ChatSettings":
        """Build settings from PROJECT_CHAT_* environment variables (call common.setup() first for .env)."""
        agent_command = os.getenv("PROJECT_CHAT_AGENT_COMMAND")
        return cls(
            project_name=os.getenv("PROJECT_CHAT_NAME", "this project"),
            project_description=os.getenv("PROJECT_CHAT_DESCRIPTION"),
            system_prompt=os.getenv("PROJECT_CHAT_SYSTEM_PROMPT"),
            strategy=os.getenv("PROJECT_CHAT_STRATEGY", "messages"),
            model=os.getenv("PROJECT_CHAT_MODEL", DEFAULT_MODEL),
            api_key=os.getenv("PROJECT_CHAT_API_KEY"),
            agent_command=agent_command.split() if agent_command else None,
            max_turns=_get_int_env("PROJECT_CHAT_MAX_TURNS", 10),
            max_tokens=_get_int_env("PROJECT_CHAT_MAX_TOKENS", 4096),
            max_history_messages=_get_int_env("PROJECT_CHAT_MAX_HISTORY_MESSAGES", 20),
            max_input_length=_get_int_env("PROJECT_CHAT_MAX_INPUT_LENGTH", 4000),
            session_max_age_seconds=_get_int_env("PROJECT_CHAT_SESSION_MAX_AGE", 24 * 60 * 60),
            redis_url=os.getenv("PROJECT_CHAT_REDIS_URL"),
            index=IndexConfig(
                docs_dir=os.getenv("PROJECT_CHAT_DOCS_DIR"),
                code_dir=os.getenv("PROJECT_CHAT_CODE_DIR"),
                doc_extensions=_get_list_env("PROJECT_CHAT_DOC_EXTENSIONS", DEFAULT_DOC_EXTENSIONS),
                code_extensions=_get_list_env("PROJECT_CHAT_CODE_EXTENSIONS", DEFAULT_CODE_EXTENSIONS),
                exclude_dirs=_get_list_env("PROJECT_CHAT_EXCLUDE_DIRS", DEFAULT_EXCLUDE_DIRS),
                max_file_size=_get_int_env("PROJECT_CHAT_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
                api_spec_path=os.getenv("PROJECT_CHAT_API_SPEC"),
            ),
        )
