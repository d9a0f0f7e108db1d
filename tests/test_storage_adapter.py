import asyncio
import json
import os
import threading
from datetime import timedelta

import pytest

from auction_draft.application.serialization import session_from_dict, session_to_dict
from auction_draft.domain.entities.draft_session import DraftSession, DraftSettings
from auction_draft.domain.entities.draft_status import DraftStatus
from auction_draft.domain.entities.log_entry import LogEntry, SkipReason, utcnow
from auction_draft.domain.exceptions import PersistenceError
from auction_draft.infrastructure.storage_adapter import JsonFileDraftRepository, MemoryDraftRepository

from conftest import CAPTAIN_X, CAPTAIN_Y, MANAGER_ID


def make_active_session(arena_id=42):
    session = DraftSession(
        arena_id=arena_id,
        manager_id=MANAGER_ID,
        settings=DraftSettings(captain_count=2, roster_size=2, budget=100, turn_timeout_sec=45),
    )
    session.add_captain(CAPTAIN_X)
    session.add_captain(CAPTAIN_Y)
    session.status = DraftStatus.ACTIVE
    session.record_pick(CAPTAIN_X, 501, 35)
    session.log.append(LogEntry.skip(CAPTAIN_Y, 1, SkipReason.TIMEOUT))
    session.teams[CAPTAIN_Y].mark_skip(1)
    session.current_turn_index = 1
    session.pending_advance = True
    return session


def test_serialization_preserves_session():
    session = make_active_session()
    data = json.loads(json.dumps(session_to_dict(session)))

    restored = session_from_dict(data)

    assert restored == session
    assert list(restored.teams) == [CAPTAIN_X, CAPTAIN_Y]
    assert restored.teams[CAPTAIN_X].players[0].amount == 35
    assert restored.log[-1].reason == SkipReason.TIMEOUT


def test_teams_are_stored_as_a_list():
    data = session_to_dict(make_active_session())
    assert isinstance(data["teams"], list)
    assert [t["captain_id"] for t in data["teams"]] == [CAPTAIN_X, CAPTAIN_Y]


@pytest.mark.asyncio
async def test_memory_repository_keeps_copies():
    repository = MemoryDraftRepository()
    session = make_active_session()
    await repository.save(session)

    session.record_pick(CAPTAIN_Y, 502, 10)
    stored = (await repository.find_active())[0]
    assert stored.total_picks == 1

    await repository.update(session)
    stored = (await repository.find_active())[0]
    assert stored.total_picks == 2


@pytest.mark.asyncio
async def test_find_active_skips_terminal_sessions():
    repository = MemoryDraftRepository()
    live = make_active_session(arena_id=1)
    done = make_active_session(arena_id=2)
    done.status = DraftStatus.COMPLETED
    await repository.save(live)
    await repository.save(done)

    active = await repository.find_active()
    assert [s.session_id for s in active] == [live.session_id]


@pytest.mark.asyncio
async def test_find_by_arena_newest_first():
    repository = MemoryDraftRepository()
    older = make_active_session()
    newer = make_active_session()
    newer.created_at = older.created_at.replace(year=older.created_at.year + 1)
    await repository.save(older)
    await repository.save(newer)
    await repository.save(make_active_session(arena_id=99))

    found = await repository.find_by_arena(42)
    assert [s.session_id for s in found] == [newer.session_id, older.session_id]


@pytest.mark.asyncio
async def test_delete():
    repository = MemoryDraftRepository()
    session = make_active_session()
    await repository.save(session)
    await repository.delete(session.session_id)
    await repository.delete(session.session_id)
    assert not repository.has_draft(session.session_id)


@pytest.mark.asyncio
async def test_json_repository_survives_restart(tmp_path):
    db_file = str(tmp_path / "data" / "drafts.json")
    repository = JsonFileDraftRepository(db_file)
    session = make_active_session()
    await repository.save(session)

    assert os.path.exists(db_file)
    assert not os.path.exists(f"{db_file}.tmp")

    reopened = JsonFileDraftRepository(db_file)
    restored = await reopened.find_active()
    assert len(restored) == 1
    assert restored[0] == session


def test_json_repository_ignores_corrupt_file(tmp_path):
    db_file = tmp_path / "drafts.json"
    db_file.write_text("{not json", encoding="utf-8")

    repository = JsonFileDraftRepository(str(db_file))
    assert repository.get_draft_count() == 0


@pytest.mark.asyncio
async def test_json_repository_skips_unreadable_records(tmp_path):
    db_file = tmp_path / "drafts.json"
    good = session_to_dict(make_active_session())
    db_file.write_text(json.dumps({good["session_id"]: good, "broken": {"status": "active"}}), encoding="utf-8")

    repository = JsonFileDraftRepository(str(db_file))
    sessions = await repository.find_active()
    assert [s.session_id for s in sessions] == [good["session_id"]]


@pytest.mark.asyncio
async def test_json_repository_write_failure_raises_persistence_error(tmp_path):
    db_file = tmp_path / "drafts.json"
    repository = JsonFileDraftRepository(str(db_file))
    # A directory in place of the target file makes the replace fail
    db_file.mkdir()

    with pytest.raises(PersistenceError):
        await repository.save(make_active_session())
    assert not os.path.exists(f"{db_file}.tmp")


@pytest.mark.asyncio
async def test_json_repository_writes_off_the_event_loop(tmp_path, monkeypatch):
    repository = JsonFileDraftRepository(str(tmp_path / "drafts.json"))
    writer_threads = []
    write_db = repository._write_db

    def recording_write(records):
        writer_threads.append(threading.get_ident())
        write_db(records)

    monkeypatch.setattr(repository, "_write_db", recording_write)
    await repository.save(make_active_session())

    assert writer_threads
    assert threading.get_ident() not in writer_threads


@pytest.mark.asyncio
async def test_json_repository_concurrent_writes_keep_every_session(tmp_path):
    db_file = str(tmp_path / "drafts.json")
    repository = JsonFileDraftRepository(db_file)
    sessions = [make_active_session(arena_id=i) for i in range(1, 11)]

    await asyncio.gather(*(repository.save(s) for s in sessions))

    reopened = JsonFileDraftRepository(db_file)
    assert reopened.get_draft_count() == 10


@pytest.mark.asyncio
async def test_cleanup_removes_only_old_finished_drafts(tmp_path):
    db_file = str(tmp_path / "drafts.json")
    repository = JsonFileDraftRepository(db_file)
    long_ago = utcnow() - timedelta(days=45)

    old_completed = make_active_session(arena_id=1)
    old_completed.status = DraftStatus.COMPLETED
    old_completed.completed_at = long_ago

    # Cancelled drafts have no completion time and age from creation
    old_cancelled = make_active_session(arena_id=2)
    old_cancelled.status = DraftStatus.CANCELLED
    old_cancelled.created_at = long_ago

    recent_completed = make_active_session(arena_id=3)
    recent_completed.status = DraftStatus.COMPLETED
    recent_completed.completed_at = utcnow()

    old_but_live = make_active_session(arena_id=4)
    old_but_live.created_at = long_ago

    for session in (old_completed, old_cancelled, recent_completed, old_but_live):
        await repository.save(session)

    assert await repository.cleanup_old_drafts(days_old=30) == 2
    assert await repository.cleanup_old_drafts(days_old=30) == 0

    reopened = JsonFileDraftRepository(db_file)
    assert not reopened.has_draft(old_completed.session_id)
    assert not reopened.has_draft(old_cancelled.session_id)
    assert reopened.has_draft(recent_completed.session_id)
    assert reopened.has_draft(old_but_live.session_id)
