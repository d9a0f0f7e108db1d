"""
Application Layer Interfaces (Ports)

Defines contracts between application layer and infrastructure adapters.
"""

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..domain.entities.draft_session import DraftSession, DraftSettings
from .events import DraftEvent, DraftTopic


# Repository Interfaces
class IDraftRepository(ABC):
    """Repository for draft persistence.

    Implementations may raise PersistenceError; the engine logs and
    carries on.
    """

    @abstractmethod
    async def save(self, session: DraftSession) -> None:
        """Store a newly created session"""
        pass

    @abstractmethod
    async def update(self, session: DraftSession) -> None:
        """Store the latest state of an existing session"""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove a session from storage"""
        pass

    @abstractmethod
    async def find_active(self) -> List[DraftSession]:
        """Get all sessions in a non-terminal status"""
        pass

    @abstractmethod
    async def find_by_arena(self, arena_id: int) -> List[DraftSession]:
        """Get every stored session for an arena, newest first"""
        pass

    @abstractmethod
    async def cleanup_old_drafts(self, days_old: int = 30) -> int:
        """Delete finished sessions older than days_old; returns how many"""
        pass


# Timer Interfaces
class TimerKind(Enum):
    """Closed set of per-session timers"""
    COUNTDOWN = "countdown"
    TURN = "turn"
    BID_RESET = "bid_reset"


_timer_ids = itertools.count(1)


@dataclass(frozen=True)
class TimerHandle:
    """Identifies one scheduled timer; a replacement gets a new timer_id"""
    session_id: str
    kind: TimerKind
    interval_ms: int
    repeating: bool = False
    timer_id: int = field(default_factory=lambda: next(_timer_ids))


@dataclass(frozen=True)
class TimerStatus:
    kind: TimerKind
    duration_ms: int
    elapsed_ms: int
    remaining_ms: int


FireCallback = Callable[[TimerHandle], None]
TickCallback = Callable[[TimerHandle, int], None]


class ITimerScheduler(ABC):
    """Cancellable, named timers scoped per session.

    At most one timer per (session_id, kind) is outstanding; scheduling a
    kind again replaces the previous one.
    """

    @abstractmethod
    def schedule(
        self,
        session_id: str,
        kind: TimerKind,
        delay_ms: int,
        on_fire: FireCallback
    ) -> TimerHandle:
        """Fire on_fire once after delay_ms"""
        pass

    @abstractmethod
    def schedule_repeating(
        self,
        session_id: str,
        kind: TimerKind,
        interval_ms: int,
        on_tick: TickCallback
    ) -> TimerHandle:
        """Call on_tick(handle, tick_number) every interval_ms until cancelled"""
        pass

    @abstractmethod
    def cancel(self, session_id: str, kind: TimerKind) -> bool:
        """Cancel one timer; returns True if one was outstanding"""
        pass

    @abstractmethod
    def cancel_all(self, session_id: str) -> int:
        """Cancel every timer of a session; safe to call repeatedly"""
        pass

    @abstractmethod
    def is_active(self, session_id: str, kind: TimerKind) -> bool:
        pass

    @abstractmethod
    def get_status(self, session_id: str, kind: TimerKind) -> Optional[TimerStatus]:
        pass

    def active_timers(self, session_id: str) -> Dict[TimerKind, TimerStatus]:
        """Status of every outstanding timer of a session"""
        timers = {}
        for kind in TimerKind:
            status = self.get_status(session_id, kind)
            if status is not None:
                timers[kind] = status
        return timers

    @abstractmethod
    def shutdown(self) -> None:
        """Cancel every timer of every session"""
        pass


# Event Bus Interfaces
EventHandler = Callable[[DraftEvent], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class Subscription:
    topic: DraftTopic
    handler: EventHandler
    subscription_id: int


class IEventBus(ABC):
    """In-process publish/subscribe channel for draft events"""

    @abstractmethod
    async def publish(self, topic: DraftTopic, event: DraftEvent) -> None:
        pass

    @abstractmethod
    def subscribe(self, topic: DraftTopic, handler: EventHandler) -> Subscription:
        pass

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> bool:
        pass


# Configuration Interfaces
class IDraftConfiguration(ABC):
    """Interface for draft configuration"""

    @abstractmethod
    def default_settings(self) -> DraftSettings:
        """Settings used when a command leaves them unspecified"""
        pass

    @abstractmethod
    def get_time_limits(self) -> Dict[str, int]:
        """Countdown, turn and bid reset durations in seconds"""
        pass

    def get_option(self, name: str, default: Any = None) -> Any:
        return default
