import logging

import discord
import pytest
from unittest.mock import AsyncMock, MagicMock

from auction_draft.application.interfaces import TimerKind
from auction_draft.infrastructure.discord_adapter import DiscordEventRelay

from conftest import ARENA_ID, CAPTAIN_X, CAPTAIN_Y, MANAGER_ID, PLAYER_P


@pytest.fixture
def relay(mock_bot, event_bus):
    relay = DiscordEventRelay(mock_bot, event_bus)
    relay.start()
    return relay


@pytest.mark.asyncio
async def test_lobby_events_are_announced(relay, engine, mock_bot, mock_channel):
    await engine.create_session(ARENA_ID, MANAGER_ID)
    await engine.add_captain(ARENA_ID, CAPTAIN_X)
    await engine.drain()

    mock_bot.get_channel.assert_called_with(ARENA_ID)
    messages = [c.args[0] for c in mock_channel.send.await_args_list]
    assert messages[0] == f"Auction draft opened by <@{MANAGER_ID}>. Waiting for 2 captains."
    assert messages[1] == f"<@{CAPTAIN_X}> joined as captain (1/2)."


@pytest.mark.asyncio
async def test_bid_announcement(relay, engine, start_draft, mock_channel):
    session_id = await start_draft()
    await engine.place_bid(session_id, CAPTAIN_X, PLAYER_P, 35)
    await engine.drain()

    last = mock_channel.send.await_args_list[-1].args[0]
    assert last == f"<@{CAPTAIN_X}> drafted <@{PLAYER_P}> for 35 (pick #1, 65 left)."


@pytest.mark.asyncio
async def test_early_countdown_ticks_are_quiet(relay, engine, start_draft, mock_channel):
    await start_draft()
    messages = [c.args[0] for c in mock_channel.send.await_args_list]

    # Countdown of 3: ticks at 2 and 1 are announced, 0 is not
    assert [m for m in messages if m.startswith("Starting in")] == ["Starting in 2...", "Starting in 1..."]


@pytest.mark.asyncio
async def test_send_failure_is_logged_and_swallowed(relay, engine, mock_channel, caplog):
    response = MagicMock(status=500, reason="Internal Server Error")
    mock_channel.send = AsyncMock(side_effect=discord.HTTPException(response, "boom"))

    with caplog.at_level(logging.ERROR):
        result = await engine.create_session(ARENA_ID, MANAGER_ID)
        await engine.drain()

    assert result.success
    assert "Failed to send session.created notice" in caplog.text


@pytest.mark.asyncio
async def test_missing_channel_is_skipped(relay, engine, mock_bot, caplog):
    mock_bot.get_channel.return_value = None

    with caplog.at_level(logging.WARNING):
        await engine.create_session(ARENA_ID, MANAGER_ID)
        await engine.drain()

    assert f"Channel {ARENA_ID} not found" in caplog.text


@pytest.mark.asyncio
async def test_stop_unsubscribes(relay, engine, event_bus, mock_channel):
    relay.stop()
    assert event_bus.subscriber_count() == 0

    await engine.create_session(ARENA_ID, MANAGER_ID)
    await engine.drain()
    mock_channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_completion_lists_standings(relay, engine, timers, start_draft, one_pick_settings, mock_channel):
    session_id = await start_draft(one_pick_settings)
    await engine.place_bid(session_id, CAPTAIN_X, PLAYER_P, 50)
    timers.fire(session_id, TimerKind.BID_RESET)
    await engine.drain()
    await engine.place_bid(session_id, CAPTAIN_Y, 202, 30)
    await engine.drain()

    last = mock_channel.send.await_args_list[-1].args[0]
    assert last.startswith("Draft complete! 1. <@12>: <@202> (spent 30, 70 left)")
