"""
Timer Scheduler Adapter

asyncio implementation of the per-session timer port. Each timer is a task
sleeping on the event loop; cancelling the timer cancels the task.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..application.interfaces import (
    FireCallback,
    ITimerScheduler,
    TickCallback,
    TimerHandle,
    TimerKind,
    TimerStatus,
)

logger = logging.getLogger(__name__)

TimerKey = Tuple[str, TimerKind]


@dataclass
class _ScheduledTimer:
    handle: TimerHandle
    task: asyncio.Task
    started_at: float  # loop.time() of the current interval start
    ticks: int = 0


class AsyncioTimerScheduler(ITimerScheduler):
    """
    Cancellable named timers on the running event loop.

    Callbacks run on the loop, synchronously, and must not block.
    """

    def __init__(self):
        self._timers: Dict[TimerKey, _ScheduledTimer] = {}

    def schedule(
        self,
        session_id: str,
        kind: TimerKind,
        delay_ms: int,
        on_fire: FireCallback
    ) -> TimerHandle:
        handle = TimerHandle(session_id=session_id, kind=kind, interval_ms=delay_ms)
        self._start(handle, lambda: self._run_once(handle, on_fire))
        logger.debug(f"Scheduled {kind.value} timer for {session_id} in {delay_ms}ms")
        return handle

    def schedule_repeating(
        self,
        session_id: str,
        kind: TimerKind,
        interval_ms: int,
        on_tick: TickCallback
    ) -> TimerHandle:
        handle = TimerHandle(session_id=session_id, kind=kind, interval_ms=interval_ms, repeating=True)
        self._start(handle, lambda: self._run_repeating(handle, on_tick))
        logger.debug(f"Scheduled repeating {kind.value} timer for {session_id} every {interval_ms}ms")
        return handle

    def cancel(self, session_id: str, kind: TimerKind) -> bool:
        entry = self._timers.pop((session_id, kind), None)
        if entry is None:
            return False
        entry.task.cancel()
        logger.debug(f"Cancelled {kind.value} timer for {session_id}")
        return True

    def cancel_all(self, session_id: str) -> int:
        return sum(1 for kind in TimerKind if self.cancel(session_id, kind))

    def is_active(self, session_id: str, kind: TimerKind) -> bool:
        return (session_id, kind) in self._timers

    def get_status(self, session_id: str, kind: TimerKind) -> Optional[TimerStatus]:
        entry = self._timers.get((session_id, kind))
        if entry is None:
            return None
        duration = entry.handle.interval_ms
        elapsed = int((entry.task.get_loop().time() - entry.started_at) * 1000)
        elapsed = min(max(elapsed, 0), duration)
        return TimerStatus(
            kind=kind,
            duration_ms=duration,
            elapsed_ms=elapsed,
            remaining_ms=duration - elapsed,
        )

    def shutdown(self) -> None:
        count = len(self._timers)
        for entry in list(self._timers.values()):
            entry.task.cancel()
        self._timers.clear()
        if count:
            logger.info(f"Timer scheduler stopped {count} timer(s)")

    def __len__(self) -> int:
        return len(self._timers)

    # ====================
    # Internals
    # ====================

    def _start(self, handle: TimerHandle, runner: Callable) -> None:
        # Starting a kind replaces the outstanding timer of that kind
        self.cancel(handle.session_id, handle.kind)
        loop = asyncio.get_running_loop()
        task = loop.create_task(runner(), name=f"draft-timer-{handle.kind.value}-{handle.session_id}")
        self._timers[(handle.session_id, handle.kind)] = _ScheduledTimer(
            handle=handle, task=task, started_at=loop.time()
        )

    def _current_entry(self, handle: TimerHandle) -> Optional[_ScheduledTimer]:
        entry = self._timers.get((handle.session_id, handle.kind))
        if entry is None or entry.handle.timer_id != handle.timer_id:
            return None
        return entry

    async def _run_once(self, handle: TimerHandle, on_fire: FireCallback) -> None:
        try:
            await asyncio.sleep(handle.interval_ms / 1000)
        except asyncio.CancelledError:
            return

        if self._current_entry(handle) is None:
            return
        del self._timers[(handle.session_id, handle.kind)]

        try:
            on_fire(handle)
        except Exception:
            logger.exception(f"{handle.kind.value} timer callback failed for {handle.session_id}")

    async def _run_repeating(self, handle: TimerHandle, on_tick: TickCallback) -> None:
        loop = asyncio.get_running_loop()
        try:
            while True:
                await asyncio.sleep(handle.interval_ms / 1000)
                entry = self._current_entry(handle)
                if entry is None:
                    return
                entry.ticks += 1
                entry.started_at = loop.time()
                try:
                    on_tick(handle, entry.ticks)
                except Exception:
                    logger.exception(f"{handle.kind.value} tick callback failed for {handle.session_id}")
        except asyncio.CancelledError:
            return
