"""
Error taxonomy for project-chat.

- InputValidationError: bad or oversized input, rejected before any model call.
- ToolExecutionError: a tool could not do its job. Contained in the tool loop and
  fed back to the model as an error-flagged tool result.
- UpstreamCallError: the model call itself failed. Fatal to the current turn only.
- IndexingError: a file could not be indexed. Always degrades to a partial index.
"""

INVALID_INPUT = "INVALID_INPUT"
INPUT_TOO_LONG = "INPUT_TOO_LONG"
API_ERROR = "API_ERROR"
AGENT_ERROR = "AGENT_ERROR"


class ProjectChatError(Exception):
    """Base class for all project-chat errors."""


class InputValidationError(ProjectChatError):
    def __init__(self, message: str, code: str = INVALID_INPUT):
        super().__init__(message)
        self.message = message
        self.code = code


class ToolExecutionError(ProjectChatError):
    """Raised by tool handlers to report a failure the model should see."""


class UpstreamCallError(ProjectChatError):
    def __init__(self, message: str, code: str = API_ERROR):
        super().__init__(message)
        self.message = message
        self.code = code


class IndexingError(ProjectChatError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not index {path}: {reason}")
        self.path = path
        self.reason = reason
