import uuid


def create_id() -> str:
    """
    Create a unique id

    Returns:
        str: The unique id
    """
    return uuid.uuid4().hex


def create_session_id() -> str:
    """Session ids are opaque to clients; a canonical uuid4 string."""
    return str(uuid.uuid4())
