"""
Validation Service - Domain Service

Handles business rule validation and constraint checking.
Every check is pure: it reads a session and returns a ValidationResult.
"""

from dataclasses import dataclass
from typing import Any, List, Tuple

from ..entities.draft_session import DraftSession, DraftSettings
from ..entities.draft_status import DraftStatus
from ..exceptions import ValidationError

# Inclusive bounds for session settings
CAPTAIN_COUNT_RANGE = (2, 10)
ROSTER_SIZE_RANGE = (1, 20)
BUDGET_RANGE = (10, 1000)
TURN_TIMEOUT_RANGE = (10, 300)
BID_RESET_RANGE = (5, 60)


@dataclass(frozen=True)
class ValidationResult:
    """Either success, or failure with a non-empty ordered list of reasons"""
    errors: Tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(errors=tuple(errors))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_error(self) -> ValidationError:
        """Typed failure for the command result"""
        if self.is_valid:
            raise ValueError("A passing validation has no error")
        return ValidationError(self.errors)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_range(errors: List[str], value: Any, bounds: Tuple[int, int], message: str) -> None:
    low, high = bounds
    if not _is_int(value) or value < low or value > high:
        errors.append(message)


class ValidationService:
    """
    Domain service for validation operations.

    Never mutates the session it is given.
    """

    def validate_settings(self, settings: DraftSettings) -> List[str]:
        """Validate settings bounds"""
        errors = []
        _check_range(errors, settings.captain_count, CAPTAIN_COUNT_RANGE,
                     "Captains must be between 2 and 10")
        _check_range(errors, settings.roster_size, ROSTER_SIZE_RANGE,
                     "Roster size must be between 1 and 20")
        _check_range(errors, settings.budget, BUDGET_RANGE,
                     "Budget must be between 10 and 1000")
        _check_range(errors, settings.turn_timeout_sec, TURN_TIMEOUT_RANGE,
                     "Turn time must be between 10 and 300 seconds")
        _check_range(errors, settings.bid_reset_sec, BID_RESET_RANGE,
                     "Bid reset time must be between 5 and 60 seconds")
        return errors

    def validate_creation(
        self,
        arena_id: Any,
        manager_id: Any,
        settings: DraftSettings
    ) -> ValidationResult:
        """Validate draft creation parameters"""
        errors = []

        if not _is_int(arena_id) or arena_id <= 0:
            errors.append("Invalid arena ID")

        if not _is_int(manager_id) or manager_id <= 0:
            errors.append("Invalid manager ID")

        errors.extend(self.validate_settings(settings))
        return ValidationResult.from_errors(errors)

    def validate_join(self, session: DraftSession, user_id: int) -> ValidationResult:
        """Validate adding a captain"""
        errors = []

        if session.status != DraftStatus.WAITING:
            errors.append("Cannot join after draft has started")

        if session.is_captain(user_id):
            errors.append("You are already a captain")

        if session.is_full:
            errors.append("Draft is full")

        if user_id == session.manager_id:
            errors.append("Draft manager cannot be a captain")

        return ValidationResult.from_errors(errors)

    def validate_leave(self, session: DraftSession, user_id: int) -> ValidationResult:
        """Validate removing a captain"""
        errors = []

        if session.status != DraftStatus.WAITING:
            errors.append("Cannot leave after draft has started")

        if not session.is_captain(user_id):
            errors.append("You are not a captain")

        return ValidationResult.from_errors(errors)

    def validate_bid(
        self,
        session: DraftSession,
        captain_id: int,
        player_id: int,
        amount: Any
    ) -> ValidationResult:
        """Validate a bid on a player"""
        errors = []

        if session.status != DraftStatus.ACTIVE:
            errors.append("Draft is not active")
        elif not session.turn_open:
            errors.append("Next turn has not started yet")

        if session.current_captain != captain_id:
            errors.append("Not your turn")

        if not session.is_captain(captain_id):
            errors.append("You are not a captain in this draft")

        amount_is_valid = _is_int(amount) and amount > 0
        if not amount_is_valid:
            errors.append("Bid amount must be a positive integer")

        team = session.get_team(captain_id)
        if team and amount_is_valid and amount > team.budget_remaining:
            errors.append(f"Insufficient budget. Available: {team.budget_remaining}")

        if session.is_player_drafted(player_id):
            errors.append("Player has already been drafted")

        if team and team.is_full(session.settings.roster_size):
            errors.append("Your roster is full")

        if player_id in session.teams or session.is_captain(player_id):
            errors.append("Cannot draft a captain")

        if player_id == session.manager_id:
            errors.append("Cannot draft the draft manager")

        return ValidationResult.from_errors(errors)

    def validate_skip(self, session: DraftSession, requester_id: int) -> ValidationResult:
        """Validate a requested skip of the current turn"""
        errors = []

        if session.status != DraftStatus.ACTIVE:
            errors.append("Draft is not active")
            return ValidationResult.from_errors(errors)

        if not session.turn_open:
            errors.append("Next turn has not started yet")

        current = session.current_captain
        if requester_id != current and requester_id != session.manager_id:
            errors.append("Only the current captain or draft manager can skip turns")

        team = session.get_team(current) if current is not None else None
        if team and not team.can_skip(session.round):
            errors.append("You can only skip once per round")

        return ValidationResult.from_errors(errors)

    def validate_cancellation(self, session: DraftSession, requester_id: int) -> ValidationResult:
        errors = []

        if requester_id != session.manager_id and not session.has_team(requester_id):
            errors.append("Only the draft manager or captains can cancel the draft")

        if session.status == DraftStatus.COMPLETED:
            errors.append("Cannot cancel a completed draft")

        if session.status == DraftStatus.CANCELLED:
            errors.append("Draft is already cancelled")

        return ValidationResult.from_errors(errors)

    def validate_end(self, session: DraftSession, requester_id: int) -> ValidationResult:
        """Validate an early end of the draft by the manager"""
        errors = []

        if requester_id != session.manager_id:
            errors.append("Only the draft manager can end the draft")

        if session.status != DraftStatus.ACTIVE:
            errors.append("Can only end active drafts")

        return ValidationResult.from_errors(errors)

    def validate_settings_update(
        self,
        session: DraftSession,
        requester_id: int,
        settings: DraftSettings
    ) -> ValidationResult:
        """Validate a settings change in the lobby"""
        errors = []

        if requester_id != session.manager_id:
            errors.append("Only the draft manager can change settings")

        if session.status != DraftStatus.WAITING:
            errors.append("Cannot update settings after draft has started")

        errors.extend(self.validate_settings(settings))

        if _is_int(settings.captain_count) and settings.captain_count < len(session.captains):
            errors.append(
                f"Captain count cannot be lower than the {len(session.captains)} captains already joined"
            )

        return ValidationResult.from_errors(errors)
