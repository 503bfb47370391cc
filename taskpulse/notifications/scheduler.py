"""
Tool: Delivery Scheduler
Purpose: Run the smart-messaging checks on a timer and deliver the results

States:
    IDLE -> SCHEDULED (initial delay) -> RUNNING (recurring interval)
    RUNNING <-> PAUSED (pause_for_testing / resume_after_testing)
    any -> STOPPED (stop, terminal)

Each tick fetches a snapshot, runs every check concurrently, logs each
failure on its own and, when a delivery handler is configured, hands due
notifications to it. Ticks are spawned independently of the interval timer;
a tick that starts while the previous one is still running is skipped.

Usage:
    from taskpulse.notifications.scheduler import DeliveryScheduler

    scheduler = DeliveryScheduler(manager, provider, checks, config.scheduler)
    scheduler.start()
    scheduler.pause_for_testing()
    scheduler.resume_after_testing()
    report = await scheduler.run_once()
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from taskpulse.logging_config import bind_tick_context, clear_tick_context, get_logger
from taskpulse.notifications.checks import Check
from taskpulse.notifications.config import SchedulerConfig
from taskpulse.notifications.manager import DeliveryHandler, NotificationManager
from taskpulse.notifications.models import Snapshot
from taskpulse.result import Err, capture_async

logger = get_logger(__name__)

SnapshotProvider = Callable[[], Union[Snapshot, Awaitable[Snapshot]]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass
class TickReport:
    """Outcome of one tick, for diagnostics only."""

    tick_id: int
    started_at: datetime
    manual: bool = False
    created: int = 0
    delivered: int = 0
    failed_checks: dict[str, str] = field(default_factory=dict)
    check_counts: dict[str, int] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tick_id": self.tick_id,
            "started_at": self.started_at.isoformat(),
            "manual": self.manual,
            "created": self.created,
            "delivered": self.delivered,
            "failed_checks": dict(self.failed_checks),
            "check_counts": dict(self.check_counts),
            "error": self.error,
        }


def check_name(check: Check) -> str:
    return getattr(check, "__name__", type(check).__name__)


class DeliveryScheduler:
    """Timer-driven runner for smart-messaging checks."""

    def __init__(
        self,
        manager: NotificationManager,
        snapshot_provider: SnapshotProvider,
        checks: list[Check],
        config: SchedulerConfig | None = None,
        delivery_handler: DeliveryHandler | None = None,
    ):
        self.manager = manager
        self.snapshot_provider = snapshot_provider
        self.checks = list(checks)
        self.config = config or SchedulerConfig()
        self.delivery_handler = delivery_handler

        self.state = SchedulerState.IDLE
        self.tick_count = 0
        self.skipped_ticks = 0
        self.last_report: TickReport | None = None

        self._loop_task: asyncio.Task | None = None
        self._resume_task: asyncio.Task | None = None
        self._tick_tasks: set[asyncio.Task] = set()
        self._tick_in_flight = False

    @property
    def is_running(self) -> bool:
        return self.state in (SchedulerState.SCHEDULED, SchedulerState.RUNNING)

    @property
    def resume_pending(self) -> bool:
        return self._resume_task is not None and not self._resume_task.done()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """Arm the initial delay. Must be called from a running event loop."""
        if self.state == SchedulerState.STOPPED:
            logger.warning("scheduler_start_after_stop")
            return False
        if self._loop_task is not None and not self._loop_task.done():
            return False

        self._arm()
        logger.info(
            "scheduler_started",
            initial_delay=self.config.initial_delay_seconds,
            interval=self.config.interval_seconds,
            checks=[check_name(c) for c in self.checks],
        )
        return True

    def _arm(self) -> None:
        self.state = SchedulerState.SCHEDULED
        self._loop_task = asyncio.create_task(self._run_loop())

    async def _run_loop(self) -> None:
        await asyncio.sleep(self.config.initial_delay_seconds)
        self.state = SchedulerState.RUNNING

        while True:
            self._spawn_tick()
            await asyncio.sleep(self.config.interval_seconds)

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self.run_once(manual=False))
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    def pause_for_testing(self) -> bool:
        """
        Cancel the pending initial delay and the recurring timer.

        Ticks already in flight finish normally. Calling it again while
        paused does nothing.

        Returns:
            True if the scheduler transitioned to PAUSED
        """
        if self.state in (SchedulerState.STOPPED, SchedulerState.IDLE):
            return False

        if self.resume_pending:
            self._resume_task.cancel()
            self._resume_task = None
            logger.info("scheduler_resume_cancelled")

        if self.state == SchedulerState.PAUSED:
            return False

        self._cancel_loop()
        self.state = SchedulerState.PAUSED
        logger.info("scheduler_paused")
        return True

    def resume_after_testing(self) -> bool:
        """
        Re-arm one scheduling cycle after the grace delay.

        Returns:
            True if a resume was scheduled; False when not paused or a
            resume is already pending
        """
        if self.state != SchedulerState.PAUSED or self.resume_pending:
            return False

        self._resume_task = asyncio.create_task(self._resume())
        logger.info("scheduler_resume_scheduled", grace=self.config.resume_grace_seconds)
        return True

    async def _resume(self) -> None:
        await asyncio.sleep(self.config.resume_grace_seconds)
        if self.state != SchedulerState.PAUSED:
            return
        self._resume_task = None
        self._arm()
        logger.info("scheduler_resumed")

    async def stop(self) -> None:
        """Cancel every timer and move to the terminal STOPPED state."""
        if self.state == SchedulerState.STOPPED:
            return

        self.state = SchedulerState.STOPPED
        pending = [t for t in (self._loop_task, self._resume_task) if t is not None]
        self._cancel_loop()
        if self._resume_task is not None:
            self._resume_task.cancel()
            self._resume_task = None

        await asyncio.gather(*pending, return_exceptions=True)
        in_flight = [t for t in self._tick_tasks if t is not asyncio.current_task()]
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

        logger.info("scheduler_stopped", ticks=self.tick_count, skipped=self.skipped_ticks)

    def _cancel_loop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None

    # -------------------------------------------------------------------------
    # Ticks
    # -------------------------------------------------------------------------

    async def fetch_snapshot(self) -> Snapshot:
        snapshot = self.snapshot_provider()
        if inspect.isawaitable(snapshot):
            snapshot = await snapshot
        return snapshot

    async def run_once(self, manual: bool = True) -> TickReport | None:
        """
        Run one tick now, whatever the timer state.

        Returns:
            The tick report, or None if skipped (another tick in flight, or
            the scheduler is stopped)
        """
        if self.state == SchedulerState.STOPPED and manual:
            return None
        if self._tick_in_flight:
            self.skipped_ticks += 1
            logger.info("scheduler_tick_skipped", reason="previous_tick_in_flight", manual=manual)
            return None

        self._tick_in_flight = True
        self.tick_count += 1
        bind_tick_context(self.tick_count, manual=manual)
        try:
            report = await self._tick(TickReport(
                tick_id=self.tick_count,
                started_at=self.manager.clock(),
                manual=manual,
            ))
        finally:
            self._tick_in_flight = False
            clear_tick_context()

        self.last_report = report
        return report

    async def _tick(self, report: TickReport) -> TickReport:
        snapshot = await capture_async(self.fetch_snapshot)
        if isinstance(snapshot, Err):
            report.error = snapshot.error
            logger.error("scheduler_snapshot_failed", error=snapshot.error)
            return report

        results = await asyncio.gather(
            *(capture_async(check, snapshot.value, self.manager) for check in self.checks),
            return_exceptions=True,
        )

        for check, result in zip(self.checks, results):
            name = check_name(check)
            if isinstance(result, BaseException):
                report.failed_checks[name] = f"{type(result).__name__}: {result}"
            elif isinstance(result, Err):
                report.failed_checks[name] = result.error
            else:
                report.check_counts[name] = len(result.value)
                report.created += len(result.value)
                continue
            logger.warning("scheduler_check_failed", check=name, error=report.failed_checks[name])

        if self.delivery_handler is not None:
            deliveries = await capture_async(
                self.manager.deliver_pending_notifications, self.delivery_handler
            )
            if isinstance(deliveries, Err):
                logger.error("scheduler_delivery_failed", error=deliveries.error)
            else:
                report.delivered = sum(1 for d in deliveries.value if d.success)

        logger.info(
            "scheduler_tick_complete",
            created=report.created,
            delivered=report.delivered,
            failed=len(report.failed_checks),
            results=report.check_counts,
        )
        return report
