# Shared configuration, ids and the error taxonomy.

from .setup import setup
from .id import create_id, create_session_id
from .config import ChatSettings, IndexConfig
from .errors import (
    ProjectChatError,
    InputValidationError,
    ToolExecutionError,
    UpstreamCallError,
    IndexingError,
)

__all__ = [
    "setup",
    "create_id",
    "create_session_id",
    "ChatSettings",
    "IndexConfig",
    "ProjectChatError",
    "InputValidationError",
    "ToolExecutionError",
    "UpstreamCallError",
    "IndexingError",
]
