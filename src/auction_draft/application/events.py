"""
Draft Events

The closed set of topics the engine publishes, and the event envelope.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from ..domain.entities.log_entry import utcnow


class DraftTopic(Enum):
    """Topics published on the event bus"""
    SESSION_CREATED = "session.created"
    CAPTAIN_ADDED = "captain.added"
    CAPTAIN_REMOVED = "captain.removed"
    SETTINGS_UPDATED = "settings.updated"
    COUNTDOWN_STARTED = "countdown.started"
    COUNTDOWN_TICK = "countdown.tick"
    SESSION_STARTED = "session.started"
    TURN_STARTED = "turn.started"
    TURN_TIMED_OUT = "turn.timedOut"
    TURN_SKIPPED = "turn.skipped"
    BID_PLACED = "bid.placed"
    SESSION_COMPLETED = "session.completed"
    SESSION_CANCELLED = "session.cancelled"


@dataclass(frozen=True)
class DraftEvent:
    """An event published by the draft engine"""
    topic: DraftTopic
    session_id: str
    arena_id: int
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
