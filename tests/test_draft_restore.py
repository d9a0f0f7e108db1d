import pytest

from auction_draft.application.draft_service import DraftEngine
from auction_draft.application.interfaces import TimerKind
from auction_draft.domain.entities.draft_session import DraftSession, DraftSettings
from auction_draft.domain.entities.draft_status import DraftStatus
from auction_draft.infrastructure.draft_config_adapter import DraftConfigurationAdapter
from auction_draft.infrastructure.mock_adapters import ManualTimerScheduler, RecordingEventBus

from conftest import ARENA_ID, CAPTAIN_X, CAPTAIN_Y, MANAGER_ID, PLAYER_P


@pytest.fixture
def fresh_engine(repository, draft_config):
    """Second engine over the same storage, as after a restart"""
    timers = ManualTimerScheduler()
    event_bus = RecordingEventBus()
    engine = DraftEngine(repository, timers, event_bus, DraftConfigurationAdapter(draft_config))
    return engine, timers, event_bus


@pytest.mark.asyncio
async def test_restore_active_session_reopens_turn(engine, repository, start_draft, fresh_engine):
    session_id = await start_draft()
    await engine.place_bid(session_id, CAPTAIN_X, PLAYER_P, 40)
    await engine.shutdown()

    assert len(engine.store) == 0
    assert len(await repository.find_active()) == 1

    restored_engine, timers, event_bus = fresh_engine
    assert await restored_engine.restore() == 1
    await restored_engine.drain()

    view = restored_engine.get_snapshot(arena_id=ARENA_ID).view
    assert view.status == "active"
    assert view.current_captain == CAPTAIN_Y
    assert view.turn_open
    assert view.get_team(CAPTAIN_X).budget_remaining == 60
    assert timers.is_active(session_id, TimerKind.TURN)

    result = await restored_engine.place_bid(session_id, CAPTAIN_Y, 202, 10)
    assert result.success


@pytest.mark.asyncio
async def test_restore_countdown_restarts_countdown(engine, repository, fresh_engine):
    created = await engine.create_session(ARENA_ID, MANAGER_ID)
    await engine.add_captain(ARENA_ID, CAPTAIN_X)
    await engine.add_captain(ARENA_ID, CAPTAIN_Y)
    await engine.shutdown()

    restored_engine, timers, event_bus = fresh_engine
    await restored_engine.restore()

    timers.tick(created.session_id, restored_engine.countdown_seconds)
    await restored_engine.drain()

    assert restored_engine.get_snapshot(arena_id=ARENA_ID).view.status == "active"


@pytest.mark.asyncio
async def test_restore_discards_corrupt_and_conflicting_sessions(repository, fresh_engine):
    good = DraftSession(arena_id=1, manager_id=MANAGER_ID)
    await repository.save(good)

    conflicting = DraftSession(arena_id=1, manager_id=MANAGER_ID)
    await repository.save(conflicting)

    corrupt = DraftSession(arena_id=2, manager_id=MANAGER_ID, settings=DraftSettings(budget=100))
    corrupt.add_captain(CAPTAIN_X)
    corrupt.teams[CAPTAIN_X].budget_remaining = 30
    await repository.save(corrupt)

    finished = DraftSession(arena_id=3, manager_id=MANAGER_ID, status=DraftStatus.COMPLETED)
    await repository.save(finished)

    restored_engine, _, _ = fresh_engine
    assert await restored_engine.restore() == 1

    assert restored_engine.get_snapshot(session_id=good.session_id).success
    assert not repository.has_draft(conflicting.session_id)
    assert not repository.has_draft(corrupt.session_id)
    assert repository.has_draft(finished.session_id)


@pytest.mark.asyncio
async def test_archived_history_lists_finished_sessions(engine, start_draft):
    first = await start_draft()
    await engine.cancel_session(first, MANAGER_ID)
    second = await start_draft()
    await engine.end_session(second, MANAGER_ID)
    await engine.drain()

    archived = await engine.get_archived(ARENA_ID)
    assert {v.session_id for v in archived} == {first, second}
    assert len(await engine.get_archived(ARENA_ID, limit=1)) == 1
