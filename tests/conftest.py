"""Shared test fixtures for TaskPulse tests.

This module provides common fixtures used across all test modules:
- A fixed reference time and a controllable clock
- Task, session and project factories
- Notification config and manager instances

Usage:
    def test_something(clock, manager):
        clock.advance(minutes=10)
        ...
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from taskpulse.notifications.config import NotificationConfig
from taskpulse.notifications.manager import NotificationManager
from taskpulse.notifications.models import (
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationType,
    Snapshot,
)
from taskpulse.tasks.models import Project, Task, TaskPriority, TaskStatus, WorkSession


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

# Wednesday mid-morning: outside the default 22 -> 8 quiet window
REFERENCE_NOW = datetime(2024, 3, 13, 10, 30)


# ─────────────────────────────────────────────────────────────────────────────
# Time Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return REFERENCE_NOW


@pytest.fixture
def clock(now: datetime) -> FakeClock:
    return FakeClock(now)


# ─────────────────────────────────────────────────────────────────────────────
# Task Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_task(now: datetime) -> Callable[..., Task]:
    """Factory for tasks created a week before the reference time.

    Returns:
        callable(id, **fields) -> Task
    """
    counter = {"n": 0}

    def _make(task_id: str | None = None, **fields) -> Task:
        counter["n"] += 1
        defaults = {
            "id": task_id or f"task_{counter['n']}",
            "title": f"Task {counter['n']}",
            "status": TaskStatus.PENDING,
            "priority": TaskPriority.MEDIUM,
            "created_at": now - timedelta(days=7),
            "updated_at": now,
            "last_worked_at": now - timedelta(hours=1),
        }
        defaults.update(fields)
        return Task(**defaults)

    return _make


@pytest.fixture
def sample_tasks(make_task, now: datetime) -> list[Task]:
    """A small mixed backlog.

    Returns:
        list with an urgent stale task, an in-progress task, a completed task
        and a low-priority task
    """
    return [
        make_task(
            "urgent",
            title="Fix login blocker",
            priority=TaskPriority.URGENT,
            updated_at=now - timedelta(days=10),
            due_date=now + timedelta(hours=1),
        ),
        make_task("progress", title="Write report", status=TaskStatus.IN_PROGRESS),
        make_task(
            "done",
            title="Send invoice",
            status=TaskStatus.COMPLETED,
            completed_at=now - timedelta(hours=2),
        ),
        make_task("low", title="Tidy desk", priority=TaskPriority.LOW),
    ]


@pytest.fixture
def make_session(now: datetime) -> Callable[..., WorkSession]:
    counter = {"n": 0}

    def _make(started_at: datetime, score: float | None, **fields) -> WorkSession:
        counter["n"] += 1
        return WorkSession(
            id=fields.pop("id", f"session_{counter['n']}"),
            task_id=fields.pop("task_id", "task_1"),
            started_at=started_at,
            ended_at=fields.pop("ended_at", started_at + timedelta(minutes=30)),
            duration_minutes=fields.pop("duration_minutes", 30),
            productivity_score=score,
        )

    return _make


@pytest.fixture
def sample_project() -> Project:
    return Project(id="proj_1", name="Website relaunch", progress=25)


@pytest.fixture
def snapshot(sample_tasks: list[Task], now: datetime) -> Snapshot:
    return Snapshot(tasks=sample_tasks, taken_at=now)


# ─────────────────────────────────────────────────────────────────────────────
# Notification Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def notification_config() -> NotificationConfig:
    return NotificationConfig()


@pytest.fixture
def manager(notification_config: NotificationConfig, clock: FakeClock) -> NotificationManager:
    return NotificationManager(notification_config, clock=clock)


@pytest.fixture
def make_draft() -> Callable[..., NotificationDraft]:
    """Factory for notification drafts.

    Returns:
        callable(message, **fields) -> NotificationDraft
    """

    def _make(message: str = "Time to review your tasks", **fields) -> NotificationDraft:
        defaults = {
            "type": NotificationType.SUGGESTION,
            "category": NotificationCategory.PRODUCTIVITY,
            "title": "Heads up",
            "message": message,
            "priority": NotificationPriority.MEDIUM,
        }
        defaults.update(fields)
        return NotificationDraft(**defaults)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Logging Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging replaces the root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
