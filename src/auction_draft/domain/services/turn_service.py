"""
Turn Rotation Service

Round-robin turn order over the current captain rotation.

A round completes, and the round counter increments, whenever the rotation
index wraps back to 0: by a normal advance, a skip, a timeout, or by a
filled captain leaving the rotation from its last slot.
"""

import logging

from ..entities.draft_session import DraftSession
from ..exceptions import InvariantViolation

logger = logging.getLogger(__name__)


class TurnService:
    """Service for advancing and reshaping the turn rotation"""

    def begin(self, session: DraftSession) -> None:
        """Initialize the rotation when the draft goes active"""
        session.current_turn_index = 0
        session.round = 1
        session.turn_open = False
        session.pending_advance = False

    def open_turn(self, session: DraftSession) -> int:
        """Open the turn for the captain at the current index"""
        captain_id = session.current_captain
        if captain_id is None:
            raise InvariantViolation(
                f"No captain at turn index {session.current_turn_index} "
                f"(captains={session.captains})"
            )
        session.turn_open = True
        session.pending_advance = False
        return captain_id

    def close_turn(self, session: DraftSession, advance_pending: bool) -> None:
        """Close the turn after a bid; the rotation moves when the turn reopens"""
        session.turn_open = False
        session.pending_advance = advance_pending

    def advance(self, session: DraftSession) -> bool:
        """Move to the next captain. Returns True if a new round began."""
        if not session.captains:
            raise InvariantViolation("Cannot advance an empty rotation")

        session.current_turn_index = (session.current_turn_index + 1) % len(session.captains)
        wrapped = session.current_turn_index == 0
        if wrapped:
            session.round += 1
            logger.debug(f"Session {session.session_id}: round {session.round} begins")
        return wrapped

    def remove_from_rotation(self, session: DraftSession, captain_id: int) -> bool:
        """
        Drop a captain whose roster is full.

        Later captains shift down one slot, so the current index already
        points at the successor. Returns True if the index wrapped to 0.
        """
        if captain_id not in session.captains:
            raise InvariantViolation(f"Captain {captain_id} is not in the rotation")

        removed_index = session.captains.index(captain_id)
        session.captains.pop(removed_index)

        if removed_index < session.current_turn_index:
            session.current_turn_index -= 1

        if not session.captains:
            session.current_turn_index = 0
            return False

        if session.current_turn_index >= len(session.captains):
            session.current_turn_index = 0
            session.round += 1
            logger.debug(f"Session {session.session_id}: round {session.round} begins")
            return True
        return False
