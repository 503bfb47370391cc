"""Tests for taskpulse/notifications/scheduler.py

Timer tests run the real event loop with delays in the tens of
milliseconds; tick bodies are driven directly through run_once.
"""

import asyncio

import pytest
import structlog

from taskpulse.notifications.config import SchedulerConfig
from taskpulse.notifications.models import NotificationDeliveryResult, Snapshot
from taskpulse.notifications.scheduler import DeliveryScheduler, SchedulerState, check_name


FAST = SchedulerConfig(initial_delay_seconds=0.01, interval_seconds=0.05, resume_grace_seconds=0.1)


class CountingCheck:
    """Check that records every call and creates nothing."""

    __name__ = "counting_check"

    def __init__(self):
        self.calls = 0

    async def __call__(self, snapshot, manager):
        self.calls += 1
        return []


async def failing_check(snapshot, manager):
    raise RuntimeError("database timeout")


@pytest.fixture
def counter():
    return CountingCheck()


@pytest.fixture
def make_scheduler(manager, snapshot):
    def _make(checks, config=FAST, provider=None, delivery_handler=None):
        return DeliveryScheduler(
            manager,
            provider or (lambda: snapshot),
            checks,
            config=config,
            delivery_handler=delivery_handler,
        )

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Lifecycle
# ─────────────────────────────────────────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_runs_ticks(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])

        assert scheduler.start() is True
        assert scheduler.state == SchedulerState.SCHEDULED
        assert scheduler.is_running

        await asyncio.sleep(0.08)

        assert scheduler.state == SchedulerState.RUNNING
        assert counter.calls >= 1
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_start_twice(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])

        scheduler.start()

        assert scheduler.start() is False
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_is_terminal(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])
        scheduler.start()

        await scheduler.stop()

        assert scheduler.state == SchedulerState.STOPPED
        assert not scheduler.is_running
        assert scheduler.start() is False
        assert scheduler.pause_for_testing() is False
        assert scheduler.resume_after_testing() is False
        assert await scheduler.run_once() is None

    @pytest.mark.asyncio
    async def test_stop_twice(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])
        scheduler.start()

        await scheduler.stop()
        await scheduler.stop()

        assert scheduler.state == SchedulerState.STOPPED

    @pytest.mark.asyncio
    async def test_no_ticks_after_stop(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])
        scheduler.start()
        await asyncio.sleep(0.03)
        await scheduler.stop()
        calls = counter.calls

        await asyncio.sleep(0.12)

        assert counter.calls == calls


# ─────────────────────────────────────────────────────────────────────────────
# Pause and Resume
# ─────────────────────────────────────────────────────────────────────────────


class TestPauseResume:
    @pytest.mark.asyncio
    async def test_pause_idle_is_noop(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])

        assert scheduler.pause_for_testing() is False
        assert scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_pause_is_idempotent(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])
        scheduler.start()

        assert scheduler.pause_for_testing() is True
        assert scheduler.pause_for_testing() is False
        assert scheduler.state == SchedulerState.PAUSED
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_pause_cancels_initial_delay(self, make_scheduler, counter):
        scheduler = make_scheduler([counter], config=SchedulerConfig(initial_delay_seconds=0.05))
        scheduler.start()

        scheduler.pause_for_testing()
        await asyncio.sleep(0.1)

        assert counter.calls == 0
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_resume_after_grace(self, make_scheduler, counter):
        """Should stay silent while paused and tick again once the grace delay passes."""
        scheduler = make_scheduler([counter])
        scheduler.start()
        await asyncio.sleep(0.03)
        scheduler.pause_for_testing()
        calls = counter.calls

        await asyncio.sleep(0.1)
        assert counter.calls == calls

        assert scheduler.resume_after_testing() is True
        assert scheduler.resume_after_testing() is False
        assert scheduler.resume_pending

        await asyncio.sleep(0.05)
        assert counter.calls == calls
        assert scheduler.state == SchedulerState.PAUSED

        await asyncio.sleep(0.12)
        assert counter.calls > calls
        assert scheduler.is_running
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_pause_cancels_pending_resume(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])
        scheduler.start()
        scheduler.pause_for_testing()
        scheduler.resume_after_testing()

        assert scheduler.pause_for_testing() is False
        assert not scheduler.resume_pending

        await asyncio.sleep(0.15)
        assert scheduler.state == SchedulerState.PAUSED
        assert counter.calls == 0
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_resume_when_not_paused(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])
        scheduler.start()

        assert scheduler.resume_after_testing() is False
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_pause_does_not_abort_tick_in_flight(self, make_scheduler):
        release = asyncio.Event()
        finished = []

        async def slow_check(snapshot, manager):
            await release.wait()
            finished.append(True)
            return []

        scheduler = make_scheduler([slow_check])
        scheduler.start()
        await asyncio.sleep(0.03)

        scheduler.pause_for_testing()
        release.set()
        await asyncio.sleep(0.01)

        assert finished == [True]
        await scheduler.stop()


# ─────────────────────────────────────────────────────────────────────────────
# Ticks
# ─────────────────────────────────────────────────────────────────────────────


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_overlapping_tick_skipped(self, make_scheduler):
        """Should refuse a second tick while the first is still running."""
        release = asyncio.Event()
        entered = asyncio.Event()

        async def slow_check(snapshot, manager):
            entered.set()
            await release.wait()
            return []

        scheduler = make_scheduler([slow_check])
        first = asyncio.create_task(scheduler.run_once())
        await entered.wait()

        assert await scheduler.run_once() is None
        assert scheduler.skipped_ticks == 1

        release.set()
        report = await first

        assert report.tick_id == 1
        assert scheduler.tick_count == 1
        assert scheduler.last_report is report

    @pytest.mark.asyncio
    async def test_failing_check_isolated(self, make_scheduler, counter):
        scheduler = make_scheduler([failing_check, counter])

        report = await scheduler.run_once()

        assert report.failed_checks == {"failing_check": "RuntimeError: database timeout"}
        assert report.check_counts == {"counting_check": 0}
        assert counter.calls == 1

    @pytest.mark.asyncio
    async def test_checks_create_notifications(self, make_scheduler, make_draft):
        async def drafting_check(snapshot, manager):
            return [manager.create_notification(make_draft(f"Note {i}")) for i in range(2)]

        scheduler = make_scheduler([drafting_check])

        report = await scheduler.run_once()

        assert report.created == 2
        assert report.check_counts == {"drafting_check": 2}

    @pytest.mark.asyncio
    async def test_snapshot_failure(self, make_scheduler, counter):
        def broken_provider():
            raise ConnectionError("store offline")

        scheduler = make_scheduler([counter], provider=broken_provider)

        report = await scheduler.run_once()

        assert report.error == "ConnectionError: store offline"
        assert counter.calls == 0

    @pytest.mark.asyncio
    async def test_async_provider(self, make_scheduler, make_task):
        seen = []

        async def provider():
            return Snapshot(tasks=[make_task("async_task")])

        async def recording_check(snapshot, manager):
            seen.extend(t.id for t in snapshot.tasks)
            return []

        scheduler = make_scheduler([recording_check], provider=provider)

        await scheduler.run_once()

        assert seen == ["async_task"]

    @pytest.mark.asyncio
    async def test_delivery_handler_invoked(self, make_scheduler, make_draft, clock):
        delivered = []

        async def drafting_check(snapshot, manager):
            return [manager.create_notification(make_draft())]

        async def handler(notification):
            delivered.append(notification.id)
            return NotificationDeliveryResult(
                success=True,
                notification_id=notification.id,
                delivered_at=clock(),
                channel="in_app",
            )

        scheduler = make_scheduler([drafting_check], delivery_handler=handler)

        report = await scheduler.run_once()

        assert report.delivered == 1
        assert len(delivered) == 1
        assert scheduler.manager.get_active_notifications()[0].id == delivered[0]

    @pytest.mark.asyncio
    async def test_tick_context_bound(self, make_scheduler):
        bound = []

        async def context_check(snapshot, manager):
            bound.append(structlog.contextvars.get_contextvars())
            return []

        scheduler = make_scheduler([context_check])

        await scheduler.run_once()

        assert bound[0]["tick_id"] == 1
        assert bound[0]["manual_tick"] is True
        assert "tick_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_report_dict(self, make_scheduler, counter):
        scheduler = make_scheduler([counter])

        data = (await scheduler.run_once()).to_dict()

        assert data["tick_id"] == 1
        assert data["manual"] is True
        assert data["failed_checks"] == {}


def test_check_name(counter):
    assert check_name(failing_check) == "failing_check"
    assert check_name(counter) == "counting_check"
