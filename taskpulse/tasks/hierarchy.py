"""
Tool: Task Hierarchy
Purpose: Queries over a task snapshot (main task -> subtask -> microtask)

Progress rolls up from the level below: a main task's progress is the share
of completed subtasks, or of completed microtasks when it has no subtasks.

Usage:
    from taskpulse.tasks.hierarchy import (
        get_task_hierarchy,
        get_completion_status,
        get_tasks_needing_followup,
        get_tasks_without_recent_activity,
    )
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from taskpulse.tasks.models import Task, TaskStatus


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up."""
    return int(math.floor(value + 0.5))


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from earlier to later (floored)."""
    return math.floor((later - earlier).total_seconds() / 86400)


def get_tasks_by_level(tasks: Iterable[Task], level: int) -> list[Task]:
    return [t for t in tasks if t.task_level == level]


def get_subtasks(tasks: Iterable[Task], task_id: str) -> list[Task]:
    return [t for t in tasks if t.task_level == 2 and t.parent_task_id == task_id]


def get_microtasks(tasks: Iterable[Task], subtask_id: str) -> list[Task]:
    return [t for t in tasks if t.task_level == 3 and t.parent_task_id == subtask_id]


def get_task_hierarchy(tasks: list[Task], task_id: str) -> dict[str, Any] | None:
    """
    Build the nested view of a main task.

    Returns:
        {"task": Task, "subtasks": [{"subtask": Task, "microtasks": [Task]}]}
        or None when the task is not in the snapshot
    """
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        return None

    return {
        "task": task,
        "subtasks": [
            {"subtask": sub, "microtasks": get_microtasks(tasks, sub.id)}
            for sub in get_subtasks(tasks, task_id)
        ],
    }


def get_completion_status(tasks: list[Task], task_id: str) -> dict[str, int]:
    """
    Completion counts and rolled-up progress for a main task.

    Returns:
        {
            "total_subtasks", "completed_subtasks",
            "total_microtasks", "completed_microtasks",
            "overall_progress": 0-100,
        }
    """
    subtasks = get_subtasks(tasks, task_id)
    # Microtasks may hang directly off a main task that has no subtasks
    microtasks = get_microtasks(tasks, task_id)
    microtasks += [m for sub in subtasks for m in get_microtasks(tasks, sub.id)]

    completed_subtasks = sum(1 for s in subtasks if s.status == TaskStatus.COMPLETED)
    completed_microtasks = sum(1 for m in microtasks if m.status == TaskStatus.COMPLETED)

    if subtasks:
        progress = round_half_up(completed_subtasks / len(subtasks) * 100)
    elif microtasks:
        progress = round_half_up(completed_microtasks / len(microtasks) * 100)
    else:
        progress = 0

    return {
        "total_subtasks": len(subtasks),
        "completed_subtasks": completed_subtasks,
        "total_microtasks": len(microtasks),
        "completed_microtasks": completed_microtasks,
        "overall_progress": progress,
    }


def stagnation_risk(task: Task, now: datetime | None = None) -> str:
    """'high' after a week without activity, 'medium' after three days."""
    now = now or datetime.now()
    last = task.last_activity_at or task.updated_at or task.created_at
    idle_days = days_between(last, now)
    if idle_days > 7:
        return "high"
    if idle_days > 3:
        return "medium"
    return "low"


def get_tasks_needing_followup(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.needs_followup]


def get_tasks_without_recent_activity(
    tasks: Iterable[Task],
    days_since: int = 7,
    now: datetime | None = None,
) -> list[Task]:
    """
    Tasks whose last work or communication is older than the cutoff.

    Tasks that were never worked on count as inactive.
    """
    cutoff = (now or datetime.now()) - timedelta(days=days_since)
    result = []
    for task in tasks:
        last_activity = task.last_activity_at
        if last_activity is None or last_activity < cutoff:
            result.append(task)
    return result


def get_open_tasks(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.is_open]


def get_overdue_tasks(tasks: Iterable[Task], now: datetime | None = None) -> list[Task]:
    now = now or datetime.now()
    return [
        t for t in tasks
        if t.status != TaskStatus.COMPLETED and t.due_date is not None and t.due_date < now
    ]


def get_tasks_due_between(
    tasks: Iterable[Task],
    start: datetime,
    end: datetime,
    include_start: bool = True,
) -> list[Task]:
    """Non-completed tasks due inside [start, end] ((start, end] if include_start is False)."""
    result = []
    for task in tasks:
        if task.due_date is None or task.status == TaskStatus.COMPLETED:
            continue
        after_start = task.due_date >= start if include_start else task.due_date > start
        if after_start and task.due_date <= end:
            result.append(task)
    return result


def get_completed_on(tasks: Iterable[Task], day: date) -> list[Task]:
    return [
        t for t in tasks
        if t.status == TaskStatus.COMPLETED
        and t.completed_at is not None
        and t.completed_at.date() == day
    ]
