"""
Session Store

Authoritative in-memory registry of live draft sessions, indexed by arena
and by session id. Holds no business logic.
"""

import logging
import threading
from typing import Dict, List, Optional

from ..domain.entities.draft_session import DraftSession
from ..domain.exceptions import ConflictError

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Registry of live sessions.

    Reads return the live object; only the DraftEngine may mutate it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[str, DraftSession] = {}
        self._by_arena: Dict[int, str] = {}  # arena_id -> session_id

    def create(self, session: DraftSession) -> str:
        """Insert a session, enforcing one live session per arena"""
        with self._lock:
            existing_id = self._by_arena.get(session.arena_id)
            if existing_id is not None:
                raise ConflictError(
                    f"A draft is already active in arena {session.arena_id}"
                )
            if session.session_id in self._by_id:
                raise ConflictError(f"Session {session.session_id} already exists")

            self._by_id[session.session_id] = session
            self._by_arena[session.arena_id] = session.session_id

        logger.debug(f"Stored session {session.session_id} for arena {session.arena_id}")
        return session.session_id

    def get_by_arena(self, arena_id: int) -> Optional[DraftSession]:
        with self._lock:
            session_id = self._by_arena.get(arena_id)
            return self._by_id.get(session_id) if session_id else None

    def get_by_id(self, session_id: str) -> Optional[DraftSession]:
        with self._lock:
            return self._by_id.get(session_id)

    def remove(self, session_id: str) -> Optional[DraftSession]:
        """Remove a session; returns it, or None if already gone"""
        with self._lock:
            session = self._by_id.pop(session_id, None)
            if session and self._by_arena.get(session.arena_id) == session_id:
                del self._by_arena[session.arena_id]
        if session:
            logger.debug(f"Removed session {session_id} from store")
        return session

    def all(self) -> List[DraftSession]:
        with self._lock:
            return list(self._by_id.values())

    def clear(self) -> None:
        with self._lock:
            self._by_id.clear()
            self._by_arena.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._by_id
