import logging
from datetime import timedelta

import pytest

from auction_draft.domain.entities.draft_session import DraftSession, DraftSettings
from auction_draft.domain.entities.draft_status import DraftStatus
from auction_draft.domain.entities.log_entry import utcnow
from auction_draft.infrastructure.container import DraftContainer
from auction_draft.infrastructure.draft_config_adapter import DraftConfig, DraftConfigurationAdapter
from auction_draft.infrastructure.storage_adapter import JsonFileDraftRepository, MemoryDraftRepository


def test_defaults_without_environment():
    config = DraftConfig.from_env({})
    assert config == DraftConfig()
    assert config.storage_path is None


def test_environment_overrides():
    config = DraftConfig.from_env({
        "DRAFT_DEFAULT_CAPTAINS": "4",
        "DRAFT_DEFAULT_ROSTER_SIZE": "3",
        "DRAFT_DEFAULT_BUDGET": "250",
        "DRAFT_TURN_TIMEOUT": "60",
        "DRAFT_BID_RESET": "5",
        "DRAFT_COUNTDOWN_SECONDS": "15",
        "DRAFT_STORAGE_PATH": "/tmp/drafts.json",
    })

    adapter = DraftConfigurationAdapter(config)
    assert adapter.default_settings() == DraftSettings(
        captain_count=4, roster_size=3, budget=250, turn_timeout_sec=60, bid_reset_sec=5
    )
    assert adapter.get_time_limits() == {"countdown": 15, "turn": 60, "bid_reset": 5}
    assert adapter.get_option("storage_path") == "/tmp/drafts.json"
    assert adapter.get_option("missing", "fallback") == "fallback"


def test_malformed_integer_falls_back_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        config = DraftConfig.from_env({"DRAFT_DEFAULT_BUDGET": "lots"})

    assert config.default_budget == 100
    assert "DRAFT_DEFAULT_BUDGET" in caplog.text


def test_container_wires_memory_repository_by_default():
    container = DraftContainer(config=DraftConfig())

    assert isinstance(container.get_draft_repository(), MemoryDraftRepository)
    assert container.get_event_relay() is None
    assert container.get_draft_engine() is container.get_draft_engine()


def test_container_uses_json_repository_when_path_set(tmp_path):
    container = DraftContainer(config=DraftConfig(storage_path=str(tmp_path / "drafts.json")))
    assert isinstance(container.get_draft_repository(), JsonFileDraftRepository)


def test_retention_days_from_environment():
    assert DraftConfig.from_env({}).retention_days == 30
    assert DraftConfig.from_env({"DRAFT_RETENTION_DAYS": "7"}).retention_days == 7


@pytest.mark.asyncio
async def test_container_start_prunes_old_history():
    container = DraftContainer(config=DraftConfig(retention_days=7))
    repository = container.get_draft_repository()

    finished = DraftSession(arena_id=1, manager_id=1, status=DraftStatus.CANCELLED)
    finished.created_at = utcnow() - timedelta(days=8)
    await repository.save(finished)

    assert await container.start() == 0
    assert not repository.has_draft(finished.session_id)
    await container.cleanup()
