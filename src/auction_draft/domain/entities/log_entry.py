"""
Draft Log Entries

Immutable records of picks and skips, appended in chronological order.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogEntryType(Enum):
    PICK = "pick"
    SKIP = "skip"


class SkipReason(Enum):
    """Why a turn was skipped"""
    REQUESTED = "requested"  # current captain asked
    MANAGER = "manager"      # manager skipped on the captain's behalf
    TIMEOUT = "timeout"      # turn timer expired


@dataclass(frozen=True)
class LogEntry:
    """A pick or skip in the draft log"""
    entry_type: LogEntryType
    captain_id: int
    round: int
    timestamp: datetime = field(default_factory=utcnow)
    player_id: Optional[int] = None
    amount: Optional[int] = None
    reason: Optional[SkipReason] = None

    @classmethod
    def pick(cls, captain_id: int, player_id: int, amount: int, round: int) -> "LogEntry":
        return cls(
            entry_type=LogEntryType.PICK,
            captain_id=captain_id,
            round=round,
            player_id=player_id,
            amount=amount,
        )

    @classmethod
    def skip(cls, captain_id: int, round: int, reason: SkipReason) -> "LogEntry":
        return cls(
            entry_type=LogEntryType.SKIP,
            captain_id=captain_id,
            round=round,
            reason=reason,
        )

    @property
    def is_pick(self) -> bool:
        return self.entry_type == LogEntryType.PICK
