"""
Event Bus Adapter

In-process publish/subscribe for draft events.
"""

import inspect
import itertools
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from ..application.events import DraftEvent, DraftTopic
from ..application.interfaces import EventHandler, IEventBus, Subscription

logger = logging.getLogger(__name__)


class InProcessEventBus(IEventBus):
    """
    Delivers each event to the topic's handlers one after another,
    in subscription order.

    A failing handler is logged and skipped; it never reaches the publisher.
    """

    def __init__(self):
        self._subscriptions: Dict[DraftTopic, List[Subscription]] = defaultdict(list)
        self._ids = itertools.count(1)

    def subscribe(self, topic: DraftTopic, handler: EventHandler) -> Subscription:
        subscription = Subscription(topic=topic, handler=handler, subscription_id=next(self._ids))
        self._subscriptions[topic].append(subscription)
        return subscription

    def subscribe_all(self, handler: EventHandler) -> List[Subscription]:
        """Subscribe one handler to every topic"""
        return [self.subscribe(topic, handler) for topic in DraftTopic]

    def unsubscribe(self, subscription: Subscription) -> bool:
        handlers = self._subscriptions.get(subscription.topic, [])
        for i, existing in enumerate(handlers):
            if existing.subscription_id == subscription.subscription_id:
                del handlers[i]
                return True
        return False

    async def publish(self, topic: DraftTopic, event: DraftEvent) -> None:
        for subscription in list(self._subscriptions.get(topic, ())):
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"Handler {subscription.subscription_id} failed for {topic.value} "
                    f"(session {event.session_id})"
                )

    def subscriber_count(self, topic: Optional[DraftTopic] = None) -> int:
        if topic is not None:
            return len(self._subscriptions.get(topic, ()))
        return sum(len(handlers) for handlers in self._subscriptions.values())
