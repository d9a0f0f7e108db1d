"""
Domain Layer - Pure Business Logic

Contains entities, value objects, domain services, and business rules.
No external dependencies allowed in this layer.
"""

from .entities.draft_session import DraftSession, DraftSettings
from .entities.draft_status import DraftStatus
from .entities.team import Pick, Team
from .exceptions import (
    ConflictError,
    DraftError,
    InvariantViolation,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

__all__ = [
    "DraftSession",
    "DraftSettings",
    "DraftStatus",
    "Pick",
    "Team",
    "ConflictError",
    "DraftError",
    "InvariantViolation",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]
