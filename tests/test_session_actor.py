import asyncio
import logging

import pytest

from auction_draft.application.interfaces import TimerHandle, TimerKind
from auction_draft.application.session_actor import SessionActor, SessionOutbox


@pytest.mark.asyncio
async def test_outbox_runs_jobs_in_issue_order():
    outbox = SessionOutbox("s-1")
    done = []

    def job(n, delay):
        async def run():
            await asyncio.sleep(delay)
            done.append(n)
        return run

    # A slow first job must not be overtaken
    outbox.put("first", job(1, 0.03))
    outbox.put("second", job(2, 0))
    outbox.put("third", job(3, 0.01))
    await outbox.join()

    assert done == [1, 2, 3]


@pytest.mark.asyncio
async def test_failed_job_is_logged_and_later_jobs_run(caplog):
    outbox = SessionOutbox("s-1")
    done = []

    async def broken():
        raise RuntimeError("disk on fire")

    async def fine():
        done.append("fine")

    with caplog.at_level(logging.ERROR):
        outbox.put("broken", broken)
        outbox.put("fine", fine)
        await outbox.join()

    assert done == ["fine"]
    assert "Outbox job 'broken' failed" in caplog.text


@pytest.mark.asyncio
async def test_closed_outbox_drains_then_drops(caplog):
    outbox = SessionOutbox("s-1")
    done = []

    async def record():
        done.append(len(done))

    outbox.put("before close", record)
    outbox.close()
    with caplog.at_level(logging.WARNING):
        outbox.put("after close", record)
    await outbox.wait_closed()

    assert done == [0]
    assert outbox.closed
    assert "dropping after close" in caplog.text


def test_actor_timer_tokens():
    actor = SessionActor("s-1")
    first = TimerHandle(session_id="s-1", kind=TimerKind.TURN, interval_ms=1000)
    second = TimerHandle(session_id="s-1", kind=TimerKind.TURN, interval_ms=1000)

    actor.arm(first)
    assert actor.is_current(first)

    actor.arm(second)
    assert not actor.is_current(first)
    assert actor.is_current(second)

    actor.disarm_all()
    assert not actor.is_current(second)
