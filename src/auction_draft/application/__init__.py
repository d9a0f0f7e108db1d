"""
Application Layer

Coordinates between domain and infrastructure layers.
Contains the draft engine, the session registry, and ports (interfaces).
"""

from .draft_service import DraftEngine
from .dto import CommandResult, PickView, SessionView, TeamView
from .events import DraftEvent, DraftTopic
from .session_store import SessionStore

__all__ = [
    "DraftEngine",
    "CommandResult",
    "PickView",
    "SessionView",
    "TeamView",
    "DraftEvent",
    "DraftTopic",
    "SessionStore",
]
