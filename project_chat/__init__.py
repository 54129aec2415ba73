# project-chat: streaming, tool-augmented chat over a project's docs and code.
# Usage: import project_chat as pc; pc.agent.ChatHandler(...), pc.index.ProjectIndex(...)

from . import common
from . import index
from . import protocol
from . import llm
from . import agent

__all__ = ["common", "index", "protocol", "llm", "agent"]
