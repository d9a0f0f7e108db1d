"""
Domain Entities

Core business objects representing the auction draft's main concepts.
"""

from .draft_session import DraftSession, DraftSettings
from .draft_status import DraftStatus
from .log_entry import LogEntry, LogEntryType, SkipReason
from .team import Pick, Team

__all__ = [
    "DraftSession",
    "DraftSettings",
    "DraftStatus",
    "LogEntry",
    "LogEntryType",
    "SkipReason",
    "Pick",
    "Team",
]
