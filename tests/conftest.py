import pytest
from typing import Iterable, Optional
from unittest.mock import AsyncMock, MagicMock

from auction_draft.application.draft_service import DraftEngine
from auction_draft.domain.entities.draft_session import DraftSettings
from auction_draft.infrastructure.draft_config_adapter import DraftConfig, DraftConfigurationAdapter
from auction_draft.infrastructure.mock_adapters import ManualTimerScheduler, RecordingEventBus
from auction_draft.infrastructure.storage_adapter import MemoryDraftRepository

ARENA_ID = 555000111
MANAGER_ID = 1
CAPTAIN_X = 11
CAPTAIN_Y = 12
CAPTAIN_Z = 13
PLAYER_P = 101
PLAYER_Q = 102
PLAYER_R = 103


@pytest.fixture
def draft_config() -> DraftConfig:
    """Config with a short countdown so tests need few ticks"""
    return DraftConfig(countdown_seconds=3)


@pytest.fixture
def timers() -> ManualTimerScheduler:
    return ManualTimerScheduler()


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def repository() -> MemoryDraftRepository:
    return MemoryDraftRepository()


@pytest.fixture
def engine(repository, timers, event_bus, draft_config) -> DraftEngine:
    return DraftEngine(
        repository=repository,
        timers=timers,
        event_bus=event_bus,
        configuration=DraftConfigurationAdapter(draft_config),
    )


@pytest.fixture
def one_pick_settings() -> DraftSettings:
    """Two captains, one player each, budget 100"""
    return DraftSettings(captain_count=2, roster_size=1, budget=100)


@pytest.fixture
def start_draft(engine, timers):
    """Create a session, fill it with captains and run the countdown out"""
    async def _start(
        settings: Optional[DraftSettings] = None,
        captains: Iterable[int] = (CAPTAIN_X, CAPTAIN_Y),
        arena_id: int = ARENA_ID
    ) -> str:
        captains = tuple(captains)
        if settings is None:
            settings = DraftSettings(captain_count=len(captains), roster_size=2, budget=100)

        created = await engine.create_session(arena_id, MANAGER_ID, settings)
        assert created.success, created.errors
        for captain_id in captains:
            joined = await engine.add_captain(arena_id, captain_id)
            assert joined.success, joined.errors

        timers.tick(created.session_id, engine.countdown_seconds)
        await engine.drain()
        return created.session_id

    return _start


@pytest.fixture
def mock_channel() -> MagicMock:
    channel = MagicMock()
    channel.send = AsyncMock()
    return channel


@pytest.fixture
def mock_bot(mock_channel) -> MagicMock:
    bot = MagicMock()
    bot.get_channel.return_value = mock_channel
    return bot
