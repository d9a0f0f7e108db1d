"""
Discord Integration Adapters

Relays draft events to the Discord channel the draft runs in.
"""

import logging
from typing import Callable, Dict, List, Optional

import discord
from discord.ext import commands

from ..application.events import DraftEvent, DraftTopic
from ..application.interfaces import IEventBus, Subscription

logger = logging.getLogger(__name__)


def _mention(user_id) -> str:
    return f"<@{user_id}>"


def _format_standings(event: DraftEvent) -> str:
    lines = []
    for place, standing in enumerate(event.payload.get("final_standings", []), start=1):
        players = ", ".join(_mention(p["player_id"]) for p in standing["players"]) or "-"
        lines.append(
            f"{place}. {_mention(standing['captain_id'])}: {players} "
            f"(spent {standing['spent']}, {standing['budget_remaining']} left)"
        )
    return " | ".join(lines)


_FORMATTERS: Dict[DraftTopic, Callable[[DraftEvent], Optional[str]]] = {
    DraftTopic.SESSION_CREATED: lambda e: (
        f"Auction draft opened by {_mention(e.payload['manager_id'])}. "
        f"Waiting for {e.payload['session'].settings.captain_count} captains."
    ),
    DraftTopic.CAPTAIN_ADDED: lambda e: (
        f"{_mention(e.payload['captain_id'])} joined as captain "
        f"({e.payload['captain_count']}/{e.payload['needed']})."
    ),
    DraftTopic.CAPTAIN_REMOVED: lambda e: f"{_mention(e.payload['captain_id'])} left the draft.",
    DraftTopic.SETTINGS_UPDATED: lambda e: (
        "Draft settings updated: "
        + ", ".join(f"{k}={e.payload['settings'][k]}" for k in e.payload.get("changed", []))
    ),
    DraftTopic.COUNTDOWN_STARTED: lambda e: f"All captains are in. Draft starts in {e.payload['total']} seconds.",
    # Only the last few seconds are worth a message
    DraftTopic.COUNTDOWN_TICK: lambda e: (
        f"Starting in {e.payload['remaining']}..." if 0 < e.payload["remaining"] <= 3 else None
    ),
    DraftTopic.SESSION_STARTED: lambda e: "The auction draft has started!",
    DraftTopic.TURN_STARTED: lambda e: (
        f"Round {e.payload['round']}: {_mention(e.payload['captain_id'])}, your turn to bid "
        f"({e.payload['timeout_sec']}s)."
    ),
    DraftTopic.TURN_TIMED_OUT: lambda e: f"{_mention(e.payload['captain_id'])} ran out of time.",
    DraftTopic.TURN_SKIPPED: lambda e: (
        f"{_mention(e.payload['captain_id'])}'s turn was skipped ({e.payload['reason']})."
    ),
    DraftTopic.BID_PLACED: lambda e: (
        f"{_mention(e.payload['captain_id'])} drafted {_mention(e.payload['player_id'])} "
        f"for {e.payload['amount']} (pick #{e.payload['pick_number']}, "
        f"{e.payload['budget_remaining']} left)."
    ),
    DraftTopic.SESSION_COMPLETED: lambda e: f"Draft complete! {_format_standings(e)}",
    DraftTopic.SESSION_CANCELLED: lambda e: f"Draft cancelled ({e.payload['reason']}).",
}


class DiscordEventRelay:
    """
    Posts a one-line notice for each draft event to the draft's channel.

    The arena id of a draft is the Discord channel id.
    """

    def __init__(self, bot: commands.Bot, event_bus: IEventBus):
        self.bot = bot
        self.event_bus = event_bus
        self._subscriptions: List[Subscription] = []

    def start(self) -> None:
        """Subscribe to every draft topic"""
        if self._subscriptions:
            return
        self._subscriptions = [self.event_bus.subscribe(topic, self.handle_event) for topic in DraftTopic]

    def stop(self) -> None:
        for subscription in self._subscriptions:
            self.event_bus.unsubscribe(subscription)
        self._subscriptions = []

    @staticmethod
    def format_event(event: DraftEvent) -> Optional[str]:
        formatter = _FORMATTERS.get(event.topic)
        return formatter(event) if formatter else None

    async def handle_event(self, event: DraftEvent) -> None:
        """Send the event's notice to its channel"""
        message = self.format_event(event)
        if not message:
            return

        channel = self.bot.get_channel(event.arena_id)
        if channel is None:
            logger.warning(f"Channel {event.arena_id} not found for {event.topic.value}")
            return

        try:
            await channel.send(message)
        except discord.HTTPException as e:
            logger.error(f"Failed to send {event.topic.value} notice to channel {event.arena_id}: {e}")
