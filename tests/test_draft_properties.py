import random

import pytest

from auction_draft.application.events import DraftTopic
from auction_draft.application.interfaces import TimerKind
from auction_draft.domain.entities.draft_session import DraftSettings

from conftest import CAPTAIN_X, CAPTAIN_Y, CAPTAIN_Z, MANAGER_ID


@pytest.mark.asyncio
async def test_every_captain_moves_once_per_round(engine, timers, event_bus, start_draft):
    settings = DraftSettings(captain_count=3, roster_size=3, budget=100)
    session_id = await start_draft(settings, captains=(CAPTAIN_X, CAPTAIN_Y, CAPTAIN_Z))

    player_id = 900
    for _ in range(3):
        session = engine.store.get_by_id(session_id)
        player_id += 1
        result = await engine.place_bid(session_id, session.current_captain, player_id, 5)
        assert result.success
        timers.fire(session_id, TimerKind.BID_RESET)
        await engine.drain()

    turns = [(e.payload["captain_id"], e.payload["round"]) for e in event_bus.of(DraftTopic.TURN_STARTED)]
    assert turns == [(CAPTAIN_X, 1), (CAPTAIN_Y, 1), (CAPTAIN_Z, 1), (CAPTAIN_X, 2)]


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
async def test_invariants_hold_through_random_drafts(engine, timers, event_bus, start_draft, seed):
    rng = random.Random(seed)
    settings = DraftSettings(captain_count=3, roster_size=3, budget=100)
    session_id = await start_draft(settings, captains=(CAPTAIN_X, CAPTAIN_Y, CAPTAIN_Z))
    players = list(range(1000, 1030))
    drafted = set()

    for _ in range(300):
        session = engine.store.get_by_id(session_id)
        if session is None:
            break

        assert session.check_invariants() == []
        for team in session.teams.values():
            assert team.budget_remaining >= 0
            assert team.spent + team.budget_remaining == settings.budget

        if not session.turn_open:
            timers.fire(session_id, TimerKind.BID_RESET)
            await engine.drain()
            continue

        captain_id = session.current_captain
        team = session.teams[captain_id]
        action = rng.random()

        if action < 0.15:
            timers.fire(session_id, TimerKind.TURN)
            await engine.drain()
        elif action < 0.3:
            requester = rng.choice([captain_id, MANAGER_ID])
            await engine.skip_turn(session_id, requester)
        elif action < 0.4:
            # Out of turn or over budget: must be rejected without effect
            other = rng.choice([c for c in (CAPTAIN_X, CAPTAIN_Y, CAPTAIN_Z) if c != captain_id])
            result = await engine.place_bid(session_id, other, rng.choice(players), 1)
            assert not result.success
            result = await engine.place_bid(session_id, captain_id, rng.choice(players), team.budget_remaining + 1)
            assert not result.success
        else:
            slots = settings.roster_size - team.player_count
            amount = rng.randint(1, team.budget_remaining // slots)
            player_id = rng.choice(players)
            result = await engine.place_bid(session_id, captain_id, player_id, amount)
            assert result.success == (player_id not in drafted)
            if result.success:
                drafted.add(player_id)

    await engine.drain()
    assert engine.store.get_by_id(session_id) is None

    completed = event_bus.of(DraftTopic.SESSION_COMPLETED)
    assert len(completed) == 1
    standings = completed[0].payload["final_standings"]
    picked = [p["player_id"] for s in standings for p in s["players"]]
    assert len(picked) == len(set(picked)) == 9
    assert all(s["spent"] + s["budget_remaining"] == 100 for s in standings)
