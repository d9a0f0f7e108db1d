"""
Team Entity

A captain's roster and remaining budget, plus the picks that spent it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from .log_entry import utcnow


@dataclass(frozen=True)
class Pick:
    """A single drafted player and the amount paid"""
    player_id: int
    amount: int
    round: int
    pick_number: int
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class Team:
    """Represents a captain's team in an auction draft"""
    captain_id: int
    budget_remaining: int
    players: List[Pick] = field(default_factory=list)
    skips_used_for_round: int = 0  # last round a voluntary skip was used

    def __post_init__(self):
        """Validate team data"""
        if self.budget_remaining < 0:
            raise ValueError("Budget remaining cannot be negative")

    @property
    def spent(self) -> int:
        """Total amount spent on picks"""
        return sum(pick.amount for pick in self.players)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def player_ids(self) -> List[int]:
        return [pick.player_id for pick in self.players]

    def is_full(self, roster_size: int) -> bool:
        """Check if team has reached the roster size"""
        return len(self.players) >= roster_size

    def can_skip(self, current_round: int) -> bool:
        """One voluntary skip per round"""
        return self.skips_used_for_round < current_round

    def contains_player(self, player_id: int) -> bool:
        return any(pick.player_id == player_id for pick in self.players)

    def add_pick(self, pick: Pick) -> None:
        """Add a pick and deduct its amount from the budget"""
        if pick.amount <= 0:
            raise ValueError("Pick amount must be positive")
        if pick.amount > self.budget_remaining:
            raise ValueError(
                f"Pick of {pick.amount} exceeds remaining budget {self.budget_remaining}"
            )
        if self.contains_player(pick.player_id):
            raise ValueError(f"Player {pick.player_id} is already on this team")
        self.players.append(pick)
        self.budget_remaining -= pick.amount

    def mark_skip(self, current_round: int) -> None:
        self.skips_used_for_round = current_round

    def reset_budget(self, budget: int) -> None:
        """Reset budget before any picks are made (settings change while waiting)"""
        if self.players:
            raise ValueError("Cannot reset budget after picks have been made")
        self.budget_remaining = budget
