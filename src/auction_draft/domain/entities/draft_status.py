"""
Draft Status Value Object

Represents the lifecycle states of a draft session with transition logic.
"""

from enum import Enum
from typing import List


class DraftStatus(Enum):
    """Lifecycle states of a draft session"""
    WAITING = "waiting"
    COUNTDOWN = "countdown"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def next_statuses(self) -> List["DraftStatus"]:
        """Get valid next statuses from current status"""
        transitions = {
            DraftStatus.WAITING: [DraftStatus.COUNTDOWN, DraftStatus.CANCELLED],
            DraftStatus.COUNTDOWN: [DraftStatus.ACTIVE, DraftStatus.CANCELLED],
            DraftStatus.ACTIVE: [DraftStatus.COMPLETED, DraftStatus.CANCELLED],
            DraftStatus.COMPLETED: [],
            DraftStatus.CANCELLED: [],
        }
        return transitions[self]

    def can_transition_to(self, target: "DraftStatus") -> bool:
        """Check if can transition to target status"""
        return target in self.next_statuses

    @property
    def is_terminal(self) -> bool:
        return self in (DraftStatus.COMPLETED, DraftStatus.CANCELLED)

    @property
    def is_live(self) -> bool:
        """Live sessions occupy their arena"""
        return not self.is_terminal
