"""
Session Actor

Single-writer execution context for one draft session.

Every command and every fired timer for a session runs under the actor's
lock. Persistence writes and event publications are queued on the actor's
outbox and drained in issue order by one worker task, outside the lock.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from .interfaces import TimerHandle, TimerKind

logger = logging.getLogger(__name__)

OutboxJob = Callable[[], Awaitable[None]]

_CLOSE = object()


class SessionOutbox:
    """FIFO of side effects for one session, applied one at a time"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, description: str, job: OutboxJob) -> None:
        """Queue a side effect; it runs after everything queued before it"""
        if self._closed:
            logger.warning(f"Outbox for {self.session_id} is closed, dropping {description}")
            return
        self._queue.put_nowait((description, job))
        self._ensure_worker()

    def close(self) -> None:
        """Stop the worker once the queued jobs have run"""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)
        self._ensure_worker()

    async def join(self) -> None:
        """Wait until every queued job has run"""
        await self._queue.join()

    async def wait_closed(self) -> None:
        await self._queue.join()
        if self._worker is not None:
            await asyncio.gather(self._worker, return_exceptions=True)

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(
                self._run(), name=f"draft-outbox-{self.session_id}"
            )

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _CLOSE:
                    return
                description, job = item
                try:
                    await job()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception(f"Outbox job '{description}' failed for session {self.session_id}")
            finally:
                self._queue.task_done()


class SessionActor:
    """
    Owns the serialized execution path of one session.

    Tracks the timer tokens the engine expects, so a fired timer that was
    cancelled or replaced while waiting for the lock can be recognised as stale.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.lock = asyncio.Lock()
        self.outbox = SessionOutbox(session_id)
        self._timer_tokens: Dict[TimerKind, int] = {}

    def arm(self, handle: TimerHandle) -> None:
        self._timer_tokens[handle.kind] = handle.timer_id

    def disarm(self, kind: TimerKind) -> None:
        self._timer_tokens.pop(kind, None)

    def disarm_all(self) -> None:
        self._timer_tokens.clear()

    def is_current(self, handle: TimerHandle) -> bool:
        """True if this handle is the timer the engine is still waiting on"""
        return self._timer_tokens.get(handle.kind) == handle.timer_id
