# Built-in tool registries: project docs/code search and per-request page context.

from .project_tools import ProjectRegistry, create_project_registry, default_system_prompt
from .page_tools import create_page_context_registry

__all__ = [
    "ProjectRegistry",
    "create_project_registry",
    "default_system_prompt",
    "create_page_context_registry",
]
