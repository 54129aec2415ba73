from .chat import chat_router, get_chat_handler

__all__ = ["chat_router", "get_chat_handler"]
