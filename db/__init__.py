from .engine import Base  # noqa: F401
from .repository import delete_value, get_value, session_scope, set_value  # noqa: F401
from .state import AppState, Theme  # noqa: F401

__all__ = [
    "AppState",
    "Base",
    "Theme",
    "delete_value",
    "get_value",
    "session_scope",
    "set_value",
]
