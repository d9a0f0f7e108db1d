"""
Draft Session Entity - Aggregate Root

Main entity representing an auction draft in one arena (channel): its
captains, their teams and budgets, the turn rotation and the pick log.
Rule checks live in ValidationService; this entity only keeps its own
structure consistent.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..exceptions import InvalidStatusTransitionError
from .draft_status import DraftStatus
from .log_entry import LogEntry, utcnow
from .team import Pick, Team


@dataclass(frozen=True)
class DraftSettings:
    """Settings fixed once the session leaves the waiting lobby"""
    captain_count: int = 2
    roster_size: int = 5
    budget: int = 100
    turn_timeout_sec: int = 30
    bid_reset_sec: int = 10


@dataclass
class DraftSession:
    """
    Draft aggregate root - manages the state of a single auction draft.

    Mutated only by the DraftEngine, one operation at a time.
    """

    # Core identification
    arena_id: int
    manager_id: int
    settings: DraftSettings = field(default_factory=DraftSettings)
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: DraftStatus = DraftStatus.WAITING

    # Rotation and rosters
    captains: List[int] = field(default_factory=list)
    teams: Dict[int, Team] = field(default_factory=dict)
    current_turn_index: int = 0
    round: int = 1
    turn_open: bool = False
    pending_advance: bool = False

    # History
    log: List[LogEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    # ===================
    # Status
    # ===================

    @property
    def is_live(self) -> bool:
        return self.status.is_live

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_full(self) -> bool:
        """Check if every captain seat is taken"""
        return len(self.captains) >= self.settings.captain_count

    def transition_to(self, target: DraftStatus) -> None:
        """Move to the target status, enforcing the lifecycle"""
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransitionError(
                f"Cannot transition from {self.status.value} to {target.value}"
            )
        self.status = target

    def force_cancel(self, reason: str) -> None:
        """Cancel from any status; used when internal state can no longer be trusted"""
        self.status = DraftStatus.CANCELLED
        self.cancel_reason = reason
        self.turn_open = False
        self.pending_advance = False

    # ===================
    # Captains
    # ===================

    def is_captain(self, user_id: int) -> bool:
        """Check if user is in the current rotation"""
        return user_id in self.captains

    def has_team(self, user_id: int) -> bool:
        return user_id in self.teams

    def add_captain(self, user_id: int) -> Team:
        """Add a captain to the rotation with a fresh team"""
        if user_id in self.teams:
            raise ValueError(f"Captain {user_id} already has a team")
        self.captains.append(user_id)
        team = Team(captain_id=user_id, budget_remaining=self.settings.budget)
        self.teams[user_id] = team
        return team

    def remove_captain(self, user_id: int) -> None:
        """Remove a captain and their team (lobby only)"""
        if user_id not in self.captains:
            raise ValueError(f"Captain {user_id} is not in the draft")
        self.captains.remove(user_id)
        self.teams.pop(user_id, None)

    def get_team(self, captain_id: int) -> Optional[Team]:
        return self.teams.get(captain_id)

    @property
    def current_captain(self) -> Optional[int]:
        """Captain whose turn it is, if the draft is active"""
        if self.status != DraftStatus.ACTIVE or not self.captains:
            return None
        if not 0 <= self.current_turn_index < len(self.captains):
            return None
        return self.captains[self.current_turn_index]

    def apply_settings(self, settings: DraftSettings) -> None:
        """Replace settings while waiting, resetting team budgets"""
        self.settings = settings
        for team in self.teams.values():
            team.reset_budget(settings.budget)

    # ===================
    # Picks
    # ===================

    @property
    def total_picks(self) -> int:
        return sum(team.player_count for team in self.teams.values())

    def is_player_drafted(self, player_id: int) -> bool:
        return any(team.contains_player(player_id) for team in self.teams.values())

    def record_pick(self, captain_id: int, player_id: int, amount: int) -> Pick:
        """Append a pick to the captain's team and to the log"""
        team = self.teams[captain_id]
        pick = Pick(
            player_id=player_id,
            amount=amount,
            round=self.round,
            pick_number=self.total_picks + 1,
        )
        team.add_pick(pick)
        self.log.append(LogEntry.pick(captain_id, player_id, amount, self.round))
        return pick

    @property
    def all_rosters_full(self) -> bool:
        """Every team has reached the roster size"""
        if not self.teams:
            return False
        return all(team.is_full(self.settings.roster_size) for team in self.teams.values())

    def final_standings(self) -> List[Team]:
        """Teams sorted by remaining budget, then join order"""
        order = {captain_id: i for i, captain_id in enumerate(self.teams)}
        return sorted(
            self.teams.values(),
            key=lambda team: (-team.budget_remaining, order[team.captain_id]),
        )

    # ===================
    # Invariants
    # ===================

    def check_invariants(self) -> List[str]:
        """Return every broken structural invariant (empty when consistent)"""
        problems = []

        seen = set()
        for team in self.teams.values():
            for player_id in team.player_ids:
                if player_id in seen:
                    problems.append(f"Player {player_id} is on more than one team")
                seen.add(player_id)

            if team.spent + team.budget_remaining != self.settings.budget:
                problems.append(
                    f"Budget mismatch for captain {team.captain_id}: "
                    f"spent {team.spent} + remaining {team.budget_remaining} "
                    f"!= {self.settings.budget}"
                )
            if team.budget_remaining < 0:
                problems.append(f"Negative budget for captain {team.captain_id}")

        for captain_id in self.captains:
            if captain_id not in self.teams:
                problems.append(f"Captain {captain_id} has no team")
            if captain_id == self.manager_id:
                problems.append("Manager is listed as a captain")

        if len(set(self.captains)) != len(self.captains):
            problems.append("Duplicate captain in rotation")

        if self.status == DraftStatus.ACTIVE:
            if not 0 <= self.current_turn_index < len(self.captains):
                problems.append(
                    f"Turn index {self.current_turn_index} out of range "
                    f"for {len(self.captains)} captains"
                )

        return problems
