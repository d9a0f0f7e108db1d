"""
Mock Adapters for Testing

Deterministic implementations of the ports for tests that must not depend
on wall-clock time or on a real storage backend.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..application.events import DraftEvent, DraftTopic
from ..application.interfaces import (
    ITimerScheduler,
    TimerHandle,
    TimerKind,
    TimerStatus,
)
from ..domain.entities.draft_session import DraftSession
from ..domain.exceptions import PersistenceError
from .event_bus import InProcessEventBus
from .storage_adapter import MemoryDraftRepository


@dataclass
class _ManualTimer:
    handle: TimerHandle
    callback: Callable
    ticks: int = 0


class ManualTimerScheduler(ITimerScheduler):
    """Timer scheduler that only fires when a test tells it to"""

    def __init__(self):
        self._timers: Dict[Tuple[str, TimerKind], _ManualTimer] = {}
        self.scheduled: List[TimerHandle] = []
        self.fired: List[TimerHandle] = []

    def schedule(self, session_id, kind, delay_ms, on_fire) -> TimerHandle:
        return self._add(TimerHandle(session_id=session_id, kind=kind, interval_ms=delay_ms), on_fire)

    def schedule_repeating(self, session_id, kind, interval_ms, on_tick) -> TimerHandle:
        handle = TimerHandle(session_id=session_id, kind=kind, interval_ms=interval_ms, repeating=True)
        return self._add(handle, on_tick)

    def cancel(self, session_id: str, kind: TimerKind) -> bool:
        return self._timers.pop((session_id, kind), None) is not None

    def cancel_all(self, session_id: str) -> int:
        return sum(1 for kind in TimerKind if self.cancel(session_id, kind))

    def is_active(self, session_id: str, kind: TimerKind) -> bool:
        return (session_id, kind) in self._timers

    def get_status(self, session_id: str, kind: TimerKind) -> Optional[TimerStatus]:
        timer = self._timers.get((session_id, kind))
        if timer is None:
            return None
        duration = timer.handle.interval_ms
        return TimerStatus(kind=kind, duration_ms=duration, elapsed_ms=0, remaining_ms=duration)

    def shutdown(self) -> None:
        self._timers.clear()

    def get_handle(self, session_id: str, kind: TimerKind) -> Optional[TimerHandle]:
        timer = self._timers.get((session_id, kind))
        return timer.handle if timer else None

    def fire(self, session_id: str, kind: TimerKind) -> bool:
        """Expire one timer (or deliver one tick). Returns False if none is outstanding."""
        timer = self._timers.get((session_id, kind))
        if timer is None:
            return False

        self.fired.append(timer.handle)
        if timer.handle.repeating:
            timer.ticks += 1
            timer.callback(timer.handle, timer.ticks)
        else:
            del self._timers[(session_id, kind)]
            timer.callback(timer.handle)
        return True

    def tick(self, session_id: str, count: int) -> int:
        """Deliver up to count countdown ticks"""
        delivered = 0
        for _ in range(count):
            if not self.fire(session_id, TimerKind.COUNTDOWN):
                break
            delivered += 1
        return delivered

    def _add(self, handle: TimerHandle, callback: Callable) -> TimerHandle:
        self._timers[(handle.session_id, handle.kind)] = _ManualTimer(handle=handle, callback=callback)
        self.scheduled.append(handle)
        return handle


class RecordingEventBus(InProcessEventBus):
    """Event bus that keeps every published event, in order"""

    def __init__(self):
        super().__init__()
        self.events: List[DraftEvent] = []

    async def publish(self, topic: DraftTopic, event: DraftEvent) -> None:
        self.events.append(event)
        await super().publish(topic, event)

    def topics(self, session_id: Optional[str] = None) -> List[DraftTopic]:
        return [e.topic for e in self.events if session_id is None or e.session_id == session_id]

    def of(self, topic: DraftTopic) -> List[DraftEvent]:
        return [e for e in self.events if e.topic == topic]

    def clear(self) -> None:
        self.events.clear()


class FailingDraftRepository(MemoryDraftRepository):
    """Repository whose writes fail on demand"""

    def __init__(self, fail_writes: bool = True):
        super().__init__()
        self.fail_writes = fail_writes
        self.attempts = 0

    async def save(self, session: DraftSession) -> None:
        self._maybe_fail()
        await super().save(session)

    async def update(self, session: DraftSession) -> None:
        self._maybe_fail()
        await super().update(session)

    def _maybe_fail(self) -> None:
        self.attempts += 1
        if self.fail_writes:
            raise PersistenceError("Storage unavailable")
