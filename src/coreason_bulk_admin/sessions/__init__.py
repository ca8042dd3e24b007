from .base import SessionManager, session_scope
from .graph import GraphRequestError, GraphSession, GraphSessionManager, ThrottledError
from .local import LocalSession, LocalSessionManager

__all__ = [
    "GraphRequestError",
    "GraphSession",
    "GraphSessionManager",
    "LocalSession",
    "LocalSessionManager",
    "SessionManager",
    "ThrottledError",
    "session_scope",
]
