"""
Draft Application Service

The DraftEngine: sole authority over session state transitions.

Every mutating path (commands and fired timers alike) runs under the
session's actor lock. Within that section the engine validates, mutates,
re-arms timers and queues its persistence writes and event publications
on the session outbox, which applies them in issue order once the lock is
released. Reads never take the lock and return immutable views.
"""

import asyncio
import copy
import logging
from dataclasses import asdict, fields, replace
from typing import Any, Callable, Dict, List, Optional, Set

from ..domain.entities.draft_session import DraftSession, DraftSettings
from ..domain.entities.draft_status import DraftStatus
from ..domain.entities.log_entry import LogEntry, SkipReason, utcnow
from ..domain.exceptions import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ..domain.services.turn_service import TurnService
from ..domain.services.validation_service import ValidationService
from .dto import CommandResult, SessionView, TeamView
from .events import DraftEvent, DraftTopic
from .interfaces import (
    IDraftConfiguration,
    IDraftRepository,
    IEventBus,
    ITimerScheduler,
    TimerHandle,
    TimerKind,
)
from .serialization import session_to_dict
from .session_actor import SessionActor, SessionOutbox
from .session_store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_COUNTDOWN_SECONDS = 10
COUNTDOWN_TICK_MS = 1000

Mutation = Callable[[DraftSession, SessionActor], Optional[CommandResult]]


class DraftEngine:
    """
    Main application service for auction drafts.

    Commands return a CommandResult and never raise for rule violations.
    """

    def __init__(
        self,
        repository: IDraftRepository,
        timers: ITimerScheduler,
        event_bus: IEventBus,
        configuration: Optional[IDraftConfiguration] = None,
        store: Optional[SessionStore] = None
    ):
        self._repository = repository
        self._timers = timers
        self._event_bus = event_bus
        self._configuration = configuration
        self._store = store or SessionStore()

        # Domain services
        self._validation_service = ValidationService()
        self._turn_service = TurnService()

        self._actors: Dict[str, SessionActor] = {}
        self._closing: Set[SessionOutbox] = set()
        self._pending: Set[asyncio.Task] = set()

        limits = configuration.get_time_limits() if configuration else {}
        self._countdown_seconds = int(limits.get("countdown", DEFAULT_COUNTDOWN_SECONDS))

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def countdown_seconds(self) -> int:
        return self._countdown_seconds

    # ====================
    # Lobby
    # ====================

    async def create_session(
        self,
        arena_id: int,
        manager_id: int,
        settings: Optional[DraftSettings] = None
    ) -> CommandResult:
        """Open a waiting lobby in an arena"""
        settings = settings or self._default_settings()
        validation = self._validation_service.validate_creation(arena_id, manager_id, settings)
        if not validation.is_valid:
            logger.debug(f"Rejected draft creation in arena {arena_id}: {list(validation.errors)}")
            return CommandResult.failure(validation.to_error())

        session = DraftSession(arena_id=arena_id, manager_id=manager_id, settings=settings)
        try:
            self._store.create(session)
        except ConflictError as e:
            return CommandResult.failure(e)

        actor = SessionActor(session.session_id)
        self._actors[session.session_id] = actor

        async with actor.lock:
            self._persist(actor, "save", session)
            self._emit(actor, session, DraftTopic.SESSION_CREATED, {"manager_id": manager_id})
            view = self._view(session)

        logger.info(
            f"Draft {session.session_id} created in arena {arena_id} by {manager_id} "
            f"({settings.captain_count} captains, roster {settings.roster_size}, budget {settings.budget})"
        )
        return CommandResult.ok(view)

    async def add_captain(self, arena_id: int, user_id: int) -> CommandResult:
        """Join the lobby as a captain; the last seat starts the countdown"""
        session = self._store.get_by_arena(arena_id)
        if session is None:
            return self._not_found(f"arena {arena_id}")
        return await self._execute(
            session.session_id,
            lambda s, actor: self._apply_add_captain(s, actor, user_id)
        )

    async def remove_captain(self, arena_id: int, user_id: int) -> CommandResult:
        """Leave the lobby before the draft starts"""
        session = self._store.get_by_arena(arena_id)
        if session is None:
            return self._not_found(f"arena {arena_id}")
        return await self._execute(
            session.session_id,
            lambda s, actor: self._apply_remove_captain(s, actor, user_id)
        )

    async def update_settings(self, arena_id: int, requester_id: int, **changes: Any) -> CommandResult:
        """Change lobby settings (manager only, waiting status only)"""
        session = self._store.get_by_arena(arena_id)
        if session is None:
            return self._not_found(f"arena {arena_id}")
        return await self._execute(
            session.session_id,
            lambda s, actor: self._apply_settings_update(s, actor, requester_id, changes)
        )

    # ====================
    # Bidding
    # ====================

    async def place_bid(
        self,
        session_id: str,
        captain_id: int,
        player_id: int,
        amount: int
    ) -> CommandResult:
        """Bid on a player during the captain's open turn"""
        return await self._execute(
            session_id,
            lambda s, actor: self._apply_bid(s, actor, captain_id, player_id, amount)
        )

    async def skip_turn(self, session_id: str, requester_id: int) -> CommandResult:
        """Skip the current turn (current captain or manager)"""
        return await self._execute(
            session_id,
            lambda s, actor: self._apply_skip(s, actor, requester_id)
        )

    # ====================
    # Termination
    # ====================

    async def cancel_session(
        self,
        session_id: str,
        requester_id: int,
        reason: str = "cancelled_by_user"
    ) -> CommandResult:
        """Cancel a live session; a second cancel finds nothing"""
        return await self._execute(
            session_id,
            lambda s, actor: self._apply_cancel(s, actor, requester_id, reason)
        )

    async def end_session(self, session_id: str, requester_id: int) -> CommandResult:
        """Complete an active draft early (manager only)"""
        return await self._execute(
            session_id,
            lambda s, actor: self._apply_end(s, actor, requester_id)
        )

    # ====================
    # Queries
    # ====================

    def get_snapshot(
        self,
        arena_id: Optional[int] = None,
        session_id: Optional[str] = None
    ) -> CommandResult:
        """Read-only view of a live session, by arena or by id"""
        if arena_id is None and session_id is None:
            return CommandResult.failure(ValidationError(["An arena or session id is required"]))

        if session_id is not None:
            session = self._store.get_by_id(session_id)
        else:
            session = self._store.get_by_arena(arena_id)

        if session is None:
            return self._not_found(f"session {session_id}" if session_id else f"arena {arena_id}")
        return CommandResult.ok(self._view(session))

    async def get_archived(self, arena_id: int, limit: int = 10) -> List[SessionView]:
        """Finished sessions of an arena, newest first"""
        try:
            sessions = await self._repository.find_by_arena(arena_id)
        except PersistenceError as e:
            logger.warning(f"Could not load draft history for arena {arena_id}: {e}")
            return []
        finished = [SessionView.from_domain(s) for s in sessions if s.is_terminal]
        return finished[:limit]

    # ====================
    # Lifecycle
    # ====================

    async def restore(self) -> int:
        """Reload live sessions from storage and re-arm their timers"""
        try:
            sessions = await self._repository.find_active()
        except PersistenceError as e:
            logger.error(f"Could not load drafts from storage: {e}")
            return 0

        restored = 0
        for session in sessions:
            if session.is_terminal:
                continue

            problems = session.check_invariants()
            if problems:
                logger.error(
                    f"Discarding corrupt draft {session.session_id}: {'; '.join(problems)}"
                )
                await self._discard(session.session_id)
                continue

            try:
                self._store.create(session)
            except ConflictError as e:
                logger.warning(f"Discarding draft {session.session_id}: {e}")
                await self._discard(session.session_id)
                continue

            actor = SessionActor(session.session_id)
            self._actors[session.session_id] = actor
            result = await self._execute(session.session_id, self._apply_resume)
            if result is None or result.success:
                restored += 1

        logger.info(f"Restored {restored} draft session(s) from storage")
        return restored

    async def drain(self) -> None:
        """Wait until fired timers and queued side effects have settled"""
        while True:
            pending = list(self._pending)
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            for actor in list(self._actors.values()):
                await actor.outbox.join()
            for outbox in list(self._closing):
                await outbox.wait_closed()
                self._closing.discard(outbox)

            if not self._pending:
                return

    async def shutdown(self) -> None:
        """Stop every timer and flush outstanding side effects"""
        for session_id, actor in list(self._actors.items()):
            self._timers.cancel_all(session_id)
            actor.disarm_all()
        self._timers.shutdown()

        await self.drain()

        for actor in list(self._actors.values()):
            actor.outbox.close()
            await actor.outbox.wait_closed()

        count = len(self._actors)
        self._actors.clear()
        self._store.clear()
        logger.info(f"Draft engine shut down ({count} live session(s) left in storage)")

    # ====================
    # Mutations
    # ====================

    def _apply_add_captain(self, session: DraftSession, actor: SessionActor, user_id: int) -> CommandResult:
        validation = self._validation_service.validate_join(session, user_id)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        session.add_captain(user_id)
        self._persist(actor, "update", session)
        self._emit(actor, session, DraftTopic.CAPTAIN_ADDED, {
            "captain_id": user_id,
            "captain_count": len(session.captains),
            "needed": session.settings.captain_count,
        })
        logger.info(
            f"Draft {session.session_id}: captain {user_id} joined "
            f"({len(session.captains)}/{session.settings.captain_count})"
        )

        if session.is_full:
            self._start_countdown(session, actor)
        return CommandResult.ok(self._view(session))

    def _apply_remove_captain(self, session: DraftSession, actor: SessionActor, user_id: int) -> CommandResult:
        validation = self._validation_service.validate_leave(session, user_id)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        session.remove_captain(user_id)
        self._persist(actor, "update", session)
        self._emit(actor, session, DraftTopic.CAPTAIN_REMOVED, {
            "captain_id": user_id,
            "captain_count": len(session.captains),
        })
        logger.info(f"Draft {session.session_id}: captain {user_id} left")
        return CommandResult.ok(self._view(session))

    def _apply_settings_update(
        self,
        session: DraftSession,
        actor: SessionActor,
        requester_id: int,
        changes: Dict[str, Any]
    ) -> CommandResult:
        known = {f.name for f in fields(DraftSettings)}
        unknown = sorted(set(changes) - known)
        if unknown:
            return CommandResult.failure(
                ValidationError([f"Unknown setting: {name}" for name in unknown])
            )

        settings = replace(session.settings, **changes)
        validation = self._validation_service.validate_settings_update(session, requester_id, settings)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        session.apply_settings(settings)
        self._persist(actor, "update", session)
        self._emit(actor, session, DraftTopic.SETTINGS_UPDATED, {
            "settings": asdict(settings),
            "changed": sorted(changes),
        })
        logger.info(f"Draft {session.session_id}: settings updated {changes}")

        if session.is_full:
            self._start_countdown(session, actor)
        return CommandResult.ok(self._view(session))

    def _apply_bid(
        self,
        session: DraftSession,
        actor: SessionActor,
        captain_id: int,
        player_id: int,
        amount: int
    ) -> CommandResult:
        validation = self._validation_service.validate_bid(session, captain_id, player_id, amount)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        self._cancel_timer(session, actor, TimerKind.TURN)

        pick = session.record_pick(captain_id, player_id, amount)
        team = session.teams[captain_id]

        # A filled captain leaves the rotation; the index then already points
        # at the successor, so the reopened turn must not advance again.
        filled = team.is_full(session.settings.roster_size)
        if filled:
            self._turn_service.remove_from_rotation(session, captain_id)
        self._turn_service.close_turn(session, advance_pending=not filled)

        self._emit(actor, session, DraftTopic.BID_PLACED, {
            "captain_id": captain_id,
            "player_id": player_id,
            "amount": amount,
            "pick_number": pick.pick_number,
            "budget_remaining": team.budget_remaining,
        })
        logger.debug(
            f"Draft {session.session_id}: captain {captain_id} bought {player_id} for {amount} "
            f"(pick #{pick.pick_number}, {team.budget_remaining} left)"
        )

        if session.all_rosters_full:
            self._complete(session, actor, "all_rosters_full")
        else:
            self._persist(actor, "update", session)
            self._arm(
                session, actor, TimerKind.BID_RESET,
                session.settings.bid_reset_sec * 1000,
            )
        return CommandResult.ok(self._view(session))

    def _apply_skip(self, session: DraftSession, actor: SessionActor, requester_id: int) -> CommandResult:
        validation = self._validation_service.validate_skip(session, requester_id)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        current = session.current_captain
        reason = SkipReason.REQUESTED if requester_id == current else SkipReason.MANAGER
        session.teams[current].mark_skip(session.round)
        self._skip_current(session, actor, reason)
        return CommandResult.ok(self._view(session))

    def _apply_cancel(
        self,
        session: DraftSession,
        actor: SessionActor,
        requester_id: int,
        reason: str
    ) -> CommandResult:
        validation = self._validation_service.validate_cancellation(session, requester_id)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        session.transition_to(DraftStatus.CANCELLED)
        session.cancel_reason = reason
        session.turn_open = False
        self._finish(session, actor, DraftTopic.SESSION_CANCELLED, {
            "reason": reason,
            "cancelled_by": requester_id,
        })
        logger.info(f"Draft {session.session_id} cancelled by {requester_id} ({reason})")
        return CommandResult.ok(self._view(session))

    def _apply_end(self, session: DraftSession, actor: SessionActor, requester_id: int) -> CommandResult:
        validation = self._validation_service.validate_end(session, requester_id)
        if not validation.is_valid:
            return CommandResult.failure(validation.to_error())

        self._complete(session, actor, "ended_by_manager")
        return CommandResult.ok(self._view(session))

    def _apply_resume(self, session: DraftSession, actor: SessionActor) -> CommandResult:
        """Re-arm the timers a restored session was waiting on"""
        if session.status == DraftStatus.COUNTDOWN:
            self._arm_countdown(session, actor)
        elif session.status == DraftStatus.ACTIVE:
            # A restored turn restarts with its full time limit
            if session.pending_advance:
                self._turn_service.advance(session)
            self._start_turn(session, actor)
        logger.info(f"Draft {session.session_id} restored in arena {session.arena_id} ({session.status.value})")
        return CommandResult.ok(self._view(session))

    # ====================
    # Timer Handling
    # ====================

    def _on_timer(self, handle: TimerHandle) -> None:
        self._post(self._execute(handle.session_id, self._timer_mutation(handle), handle))

    def _on_tick(self, handle: TimerHandle, tick: int) -> None:
        self._post(self._execute(
            handle.session_id,
            lambda s, actor: self._handle_countdown_tick(s, actor, tick),
            handle
        ))

    def _post(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _timer_mutation(self, handle: TimerHandle) -> Mutation:
        if handle.kind == TimerKind.TURN:
            return self._handle_turn_timeout
        if handle.kind == TimerKind.BID_RESET:
            return self._handle_bid_reset
        raise ValueError(f"Unexpected one-shot timer {handle.kind.value}")

    def _handle_countdown_tick(self, session: DraftSession, actor: SessionActor, tick: int) -> None:
        if session.status != DraftStatus.COUNTDOWN:
            return
        total = self._countdown_seconds
        remaining = max(total - tick, 0)
        self._emit(actor, session, DraftTopic.COUNTDOWN_TICK, {"remaining": remaining, "total": total})
        if remaining == 0:
            self._start_draft(session, actor)

    def _handle_turn_timeout(self, session: DraftSession, actor: SessionActor) -> None:
        if session.status != DraftStatus.ACTIVE or not session.turn_open:
            return
        captain_id = session.current_captain
        self._emit(actor, session, DraftTopic.TURN_TIMED_OUT, {"captain_id": captain_id})
        logger.debug(f"Draft {session.session_id}: captain {captain_id} timed out")
        self._skip_current(session, actor, SkipReason.TIMEOUT)

    def _handle_bid_reset(self, session: DraftSession, actor: SessionActor) -> None:
        if session.status != DraftStatus.ACTIVE or session.turn_open:
            return
        if session.pending_advance:
            self._turn_service.advance(session)
        self._start_turn(session, actor)

    # ====================
    # Transitions
    # ====================

    def _start_countdown(self, session: DraftSession, actor: SessionActor) -> None:
        session.transition_to(DraftStatus.COUNTDOWN)
        self._persist(actor, "update", session)
        self._arm_countdown(session, actor)
        logger.info(f"Draft {session.session_id}: countdown started ({self._countdown_seconds}s)")

    def _arm_countdown(self, session: DraftSession, actor: SessionActor) -> None:
        handle = self._timers.schedule_repeating(
            session.session_id, TimerKind.COUNTDOWN, COUNTDOWN_TICK_MS, self._on_tick
        )
        actor.arm(handle)
        self._emit(actor, session, DraftTopic.COUNTDOWN_STARTED, {"total": self._countdown_seconds})

    def _start_draft(self, session: DraftSession, actor: SessionActor) -> None:
        self._cancel_timer(session, actor, TimerKind.COUNTDOWN)
        session.transition_to(DraftStatus.ACTIVE)
        self._turn_service.begin(session)
        self._emit(actor, session, DraftTopic.SESSION_STARTED, {"captains": list(session.captains)})
        logger.info(f"Draft {session.session_id} started with captains {session.captains}")
        self._start_turn(session, actor)

    def _start_turn(self, session: DraftSession, actor: SessionActor) -> None:
        captain_id = self._turn_service.open_turn(session)
        self._persist(actor, "update", session)
        self._arm(session, actor, TimerKind.TURN, session.settings.turn_timeout_sec * 1000)
        self._emit(actor, session, DraftTopic.TURN_STARTED, {
            "captain_id": captain_id,
            "round": session.round,
            "timeout_sec": session.settings.turn_timeout_sec,
        })

    def _skip_current(self, session: DraftSession, actor: SessionActor, reason: SkipReason) -> None:
        captain_id = session.current_captain
        self._cancel_timer(session, actor, TimerKind.TURN)
        session.log.append(LogEntry.skip(captain_id, session.round, reason))
        session.turn_open = False
        self._turn_service.advance(session)
        self._emit(actor, session, DraftTopic.TURN_SKIPPED, {
            "captain_id": captain_id,
            "reason": reason.value,
        })
        logger.debug(f"Draft {session.session_id}: captain {captain_id} skipped ({reason.value})")
        self._start_turn(session, actor)

    def _complete(self, session: DraftSession, actor: SessionActor, reason: str) -> None:
        session.transition_to(DraftStatus.COMPLETED)
        session.completed_at = utcnow()
        session.turn_open = False
        session.pending_advance = False
        standings = [TeamView.from_domain(t, session).to_standing() for t in session.final_standings()]
        self._finish(session, actor, DraftTopic.SESSION_COMPLETED, {
            "final_standings": standings,
            "reason": reason,
        })
        logger.info(f"Draft {session.session_id} completed ({reason}, {session.total_picks} picks)")

    def _finish(
        self,
        session: DraftSession,
        actor: SessionActor,
        topic: DraftTopic,
        payload: Dict[str, Any]
    ) -> None:
        """Tear down a session that reached a terminal status"""
        self._timers.cancel_all(session.session_id)
        actor.disarm_all()
        self._store.remove(session.session_id)
        self._actors.pop(session.session_id, None)

        self._persist(actor, "update", session)
        self._emit(actor, session, topic, payload)
        actor.outbox.close()
        self._closing.add(actor.outbox)
        self._post(self._release(actor.outbox))

    async def _release(self, outbox: SessionOutbox) -> None:
        await outbox.wait_closed()
        self._closing.discard(outbox)

    # ====================
    # Execution
    # ====================

    async def _execute(
        self,
        session_id: str,
        mutation: Mutation,
        handle: Optional[TimerHandle] = None
    ) -> Optional[CommandResult]:
        """Run one mutation under the session's actor lock"""
        actor = self._actors.get(session_id)
        if actor is None:
            if handle is not None:
                logger.debug(f"Ignoring {handle.kind.value} timer for finished session {session_id}")
                return None
            return self._not_found(f"session {session_id}")

        async with actor.lock:
            if handle is not None:
                if not actor.is_current(handle):
                    logger.debug(f"Ignoring stale {handle.kind.value} timer for session {session_id}")
                    return None
                if not handle.repeating:
                    actor.disarm(handle.kind)

            session = self._store.get_by_id(session_id)
            if session is None:
                return None if handle is not None else self._not_found(f"session {session_id}")

            try:
                result = mutation(session, actor)
                self._verify(session)
                return result
            except InvariantViolation as e:
                return self._abort(session, actor, e)
            except Exception as e:
                logger.exception(f"Unexpected error in draft {session_id}")
                return self._abort(session, actor, InvariantViolation(f"Unexpected error: {e}"))

    def _verify(self, session: DraftSession) -> None:
        problems = session.check_invariants()
        if problems:
            raise InvariantViolation("; ".join(problems))

    def _abort(self, session: DraftSession, actor: SessionActor, error: InvariantViolation) -> CommandResult:
        """Force-cancel a session whose state can no longer be trusted"""
        try:
            state = session_to_dict(session)
        except Exception as e:
            state = f"<unserializable: {e}>"
        logger.error(f"Invariant violation in draft {session.session_id}: {error}. State: {state}")

        # Teardown may have been cut short after the status already changed
        if not actor.outbox.closed:
            session.force_cancel("internal_error")
            self._finish(session, actor, DraftTopic.SESSION_CANCELLED, {"reason": "internal_error"})
        return CommandResult.failure(error)

    # ====================
    # Side Effects
    # ====================

    def _persist(self, actor: SessionActor, operation: str, session: DraftSession) -> None:
        """Queue a write of the session as it is right now"""
        snapshot = copy.deepcopy(session)
        write = getattr(self._repository, operation)

        async def job():
            try:
                await write(snapshot)
            except PersistenceError as e:
                logger.warning(f"Failed to {operation} draft {snapshot.session_id}: {e}")

        actor.outbox.put(f"{operation} {snapshot.session_id}", job)

    def _emit(
        self,
        actor: SessionActor,
        session: DraftSession,
        topic: DraftTopic,
        payload: Dict[str, Any]
    ) -> None:
        event = DraftEvent(
            topic=topic,
            session_id=session.session_id,
            arena_id=session.arena_id,
            payload={**payload, "session": self._view(session)},
        )

        async def job():
            await self._event_bus.publish(topic, event)

        actor.outbox.put(f"publish {topic.value}", job)

    def _arm(self, session: DraftSession, actor: SessionActor, kind: TimerKind, delay_ms: int) -> None:
        handle = self._timers.schedule(session.session_id, kind, delay_ms, self._on_timer)
        actor.arm(handle)

    def _cancel_timer(self, session: DraftSession, actor: SessionActor, kind: TimerKind) -> None:
        self._timers.cancel(session.session_id, kind)
        actor.disarm(kind)

    async def _discard(self, session_id: str) -> None:
        try:
            await self._repository.delete(session_id)
        except PersistenceError as e:
            logger.warning(f"Failed to delete draft {session_id}: {e}")

    # ====================
    # Helpers
    # ====================

    def _default_settings(self) -> DraftSettings:
        if self._configuration is not None:
            return self._configuration.default_settings()
        return DraftSettings()

    def _view(self, session: DraftSession) -> SessionView:
        timers = {}
        if session.is_live:
            timers = {
                kind.value: status.remaining_ms
                for kind, status in self._timers.active_timers(session.session_id).items()
            }
        return SessionView.from_domain(session, timers)

    def _not_found(self, what: str) -> CommandResult:
        return CommandResult.failure(NotFoundError(f"No active draft found for {what}"))
