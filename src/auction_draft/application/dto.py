"""
Data Transfer Objects

Immutable snapshots handed to callers and event subscribers.
Only the engine holds the live session; everyone else sees these views.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..domain.entities.draft_session import DraftSession, DraftSettings
from ..domain.entities.team import Pick, Team
from ..domain.exceptions import DraftError


@dataclass(frozen=True)
class PickView:
    """Pick data for display"""
    player_id: int
    amount: int
    round: int
    pick_number: int
    timestamp: datetime

    @classmethod
    def from_domain(cls, pick: Pick) -> "PickView":
        return cls(
            player_id=pick.player_id,
            amount=pick.amount,
            round=pick.round,
            pick_number=pick.pick_number,
            timestamp=pick.timestamp,
        )


@dataclass(frozen=True)
class TeamView:
    """Team data for display"""
    captain_id: int
    players: Tuple[PickView, ...]
    budget_remaining: int
    spent: int
    roster_size: int
    in_rotation: bool

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.roster_size

    @property
    def player_ids(self) -> List[int]:
        return [pick.player_id for pick in self.players]

    @classmethod
    def from_domain(cls, team: Team, session: DraftSession) -> "TeamView":
        return cls(
            captain_id=team.captain_id,
            players=tuple(PickView.from_domain(p) for p in team.players),
            budget_remaining=team.budget_remaining,
            spent=team.spent,
            roster_size=session.settings.roster_size,
            in_rotation=session.is_captain(team.captain_id),
        )

    def to_standing(self) -> Dict[str, Any]:
        """Plain-data standing used in completion payloads"""
        return {
            "captain_id": self.captain_id,
            "players": [
                {"player_id": p.player_id, "amount": p.amount, "pick_number": p.pick_number}
                for p in self.players
            ],
            "spent": self.spent,
            "budget_remaining": self.budget_remaining,
        }


@dataclass(frozen=True)
class SessionView:
    """Complete read-only projection of a draft session"""
    session_id: str
    arena_id: int
    manager_id: int
    status: str  # DraftStatus.value
    settings: DraftSettings
    captains: Tuple[int, ...]
    teams: Tuple[TeamView, ...]
    current_turn_index: Optional[int]
    current_captain: Optional[int]
    round: int
    turn_open: bool
    total_picks: int
    created_at: datetime
    completed_at: Optional[datetime]
    cancel_reason: Optional[str]
    timers: Dict[str, int] = field(default_factory=dict)  # kind -> remaining ms

    def get_team(self, captain_id: int) -> Optional[TeamView]:
        for team in self.teams:
            if team.captain_id == captain_id:
                return team
        return None

    @property
    def is_live(self) -> bool:
        return self.status in ("waiting", "countdown", "active")

    @classmethod
    def from_domain(
        cls,
        session: DraftSession,
        timers: Optional[Dict[str, int]] = None
    ) -> "SessionView":
        """Convert from domain DraftSession entity"""
        current = session.current_captain
        return cls(
            session_id=session.session_id,
            arena_id=session.arena_id,
            manager_id=session.manager_id,
            status=session.status.value,
            settings=session.settings,
            captains=tuple(session.captains),
            teams=tuple(TeamView.from_domain(t, session) for t in session.teams.values()),
            current_turn_index=session.current_turn_index if current is not None else None,
            current_captain=current,
            round=session.round,
            turn_open=session.turn_open,
            total_picks=session.total_picks,
            created_at=session.created_at,
            completed_at=session.completed_at,
            cancel_reason=session.cancel_reason,
            timers=dict(timers or {}),
        )


# Result DTOs for operation outcomes

@dataclass(frozen=True)
class CommandResult:
    """Outcome of an engine command: success with a view, or a typed error"""
    success: bool
    view: Optional[SessionView] = None
    error: Optional[DraftError] = None

    @classmethod
    def ok(cls, view: Optional[SessionView] = None) -> "CommandResult":
        return cls(success=True, view=view)

    @classmethod
    def failure(cls, error: DraftError) -> "CommandResult":
        return cls(success=False, error=error)

    @property
    def errors(self) -> List[str]:
        return list(self.error.reasons) if self.error else []

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.error_code if self.error else None

    @property
    def session_id(self) -> Optional[str]:
        return self.view.session_id if self.view else None
