"""
Storage Adapter

Implementations of the draft repository interface: in-memory, and a JSON
file that survives restarts.

Both keep serialized records rather than live objects, so nothing the
engine mutates later can leak into storage.
"""

import asyncio
import json
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..application.interfaces import IDraftRepository
from ..application.serialization import session_from_dict, session_to_dict
from ..domain.entities.draft_session import DraftSession
from ..domain.entities.draft_status import DraftStatus
from ..domain.entities.log_entry import utcnow
from ..domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)

_LIVE_STATUSES = {status.value for status in DraftStatus if status.is_live}
_TERMINAL_STATUSES = {status.value for status in DraftStatus if status.is_terminal}


def _finished_at(record: Dict[str, Any]) -> Optional[datetime]:
    """When a stored draft ended, falling back to its creation time"""
    value = record.get("completed_at") or record.get("created_at")
    if not value:
        return None
    try:
        finished = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if finished.tzinfo is None:
        finished = finished.replace(tzinfo=timezone.utc)
    return finished


class MemoryDraftRepository(IDraftRepository):
    """In-memory implementation of draft repository"""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}  # session_id -> record

    async def save(self, session: DraftSession) -> None:
        """Store a new session"""
        self._records[session.session_id] = session_to_dict(session)
        await self._commit()

    async def update(self, session: DraftSession) -> None:
        """Store the latest state of a session"""
        self._records[session.session_id] = session_to_dict(session)
        await self._commit()

    async def delete(self, session_id: str) -> None:
        """Delete a session from storage"""
        if session_id in self._records:
            del self._records[session_id]
            await self._commit()

    async def find_active(self) -> List[DraftSession]:
        """Get all sessions that have not finished"""
        return self._load(r for r in self._records.values() if r.get("status") in _LIVE_STATUSES)

    async def find_by_arena(self, arena_id: int) -> List[DraftSession]:
        """Get every session of an arena, newest first"""
        sessions = self._load(r for r in self._records.values() if r.get("arena_id") == arena_id)
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    async def cleanup_old_drafts(self, days_old: int = 30) -> int:
        """Delete finished drafts that ended more than days_old days ago"""
        cutoff = utcnow() - timedelta(days=days_old)
        stale = []
        for session_id, record in self._records.items():
            if record.get("status") not in _TERMINAL_STATUSES:
                continue
            finished = _finished_at(record)
            if finished is not None and finished < cutoff:
                stale.append(session_id)

        for session_id in stale:
            del self._records[session_id]
        if stale:
            await self._commit()

        logger.info(f"Cleaned up {len(stale)} old draft(s)")
        return len(stale)

    def get_draft_count(self) -> int:
        return len(self._records)

    def has_draft(self, session_id: str) -> bool:
        return session_id in self._records

    def _load(self, records) -> List[DraftSession]:
        sessions = []
        for record in records:
            try:
                sessions.append(session_from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable draft record {record.get('session_id')}: {e}")
        return sessions

    async def _commit(self) -> None:
        """Hook for durable subclasses"""


class JsonFileDraftRepository(MemoryDraftRepository):
    """Draft repository backed by a JSON file, rewritten atomically on each change"""

    def __init__(self, db_file: str = "data/drafts.json"):
        """Initialize repository

        Args:
            db_file: Path to JSON database file
        """
        super().__init__()
        self.db_file = db_file
        self._write_lock = asyncio.Lock()
        self._load_db()

    def _load_db(self) -> None:
        """Load records from JSON file"""
        try:
            self._ensure_db_directory()

            if not os.path.exists(self.db_file):
                self._records = {}
                return

            with open(self.db_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("Invalid database format")
            self._records = data

        except Exception as e:
            logger.error(f"Failed to load draft database {self.db_file}: {e}")
            self._records = {}

    def _ensure_db_directory(self) -> None:
        """Ensure database directory exists"""
        directory = os.path.dirname(self.db_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

    async def _commit(self) -> None:
        """Write the database file from a worker thread, one write at a time"""
        async with self._write_lock:
            records = dict(self._records)
            await asyncio.to_thread(self._write_db, records)

    def _write_db(self, records: Dict[str, Dict[str, Any]]) -> None:
        """Save database to file

        Raises:
            PersistenceError: If the file cannot be written
        """
        temp_file = f"{self.db_file}.tmp"
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False, indent=2)

            # Atomic replace
            os.replace(temp_file, self.db_file)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(temp_file):
                os.unlink(temp_file)
            raise PersistenceError(f"Failed to save draft database: {e}") from e
