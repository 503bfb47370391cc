"""
Tool: Task Models
Purpose: Snapshot records consumed from the persistence layer

Usage:
    from taskpulse.tasks.models import Task, Project, WorkSession

    task = Task.from_dict(row)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Declared task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse an ISO timestamp from the store.

    Aware timestamps are converted to local naive time so they compare with
    datetime.now().
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


@dataclass
class Task:
    """
    Task record as fetched by the host application.

    Main tasks have task_level 1, subtasks 2 and microtasks 3; the
    parent_task_id links a level to the one above it.
    """

    id: str
    title: str
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.LOW

    # Timing
    due_date: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime | None = None
    last_worked_at: datetime | None = None
    last_communication_at: datetime | None = None
    completed_at: datetime | None = None

    # Hierarchy
    parent_task_id: str | None = None
    task_level: int = 1
    project_id: str | None = None

    needs_followup: bool = False

    @property
    def is_open(self) -> bool:
        return self.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

    @property
    def last_activity_at(self) -> datetime | None:
        """Most recent work or communication on the task."""
        return self.last_worked_at or self.last_communication_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for notification metadata."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "last_worked_at": self.last_worked_at.isoformat() if self.last_worked_at else None,
            "parent_task_id": self.parent_task_id,
            "task_level": self.task_level,
            "project_id": self.project_id,
            "needs_followup": self.needs_followup,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """
        Create from a store row.

        Unknown keys are ignored; unknown status or priority values fall back
        to pending / low.
        """
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            status=_coerce_enum(TaskStatus, data.get("status"), TaskStatus.PENDING),
            priority=_coerce_enum(TaskPriority, data.get("priority"), TaskPriority.LOW),
            due_date=parse_datetime(data.get("due_date")),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
            updated_at=parse_datetime(data.get("updated_at")),
            last_worked_at=parse_datetime(data.get("last_worked_at")),
            last_communication_at=parse_datetime(data.get("last_communication_at")),
            completed_at=parse_datetime(data.get("completed_at")),
            parent_task_id=data.get("parent_task_id"),
            task_level=int(data.get("task_level") or 1),
            project_id=data.get("project_id"),
            needs_followup=bool(data.get("needs_followup", False)),
        )


@dataclass
class Project:
    id: str
    name: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    progress: float = 0.0  # 0-100

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            status=_coerce_enum(ProjectStatus, data.get("status"), ProjectStatus.ACTIVE),
            progress=float(data.get("progress") or 0),
        )


@dataclass(frozen=True)
class WorkSession:
    """
    A timed work session on a task.

    Open while ended_at is None; frozen because closed sessions never change
    and open ones are re-fetched rather than mutated.
    """

    id: str
    task_id: str
    started_at: datetime
    ended_at: datetime | None = None
    duration_minutes: int = 0
    productivity_score: float | None = None  # 0-10

    @property
    def is_closed(self) -> bool:
        return self.ended_at is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkSession":
        score = data.get("productivity_score")
        if score is not None:
            score = max(0.0, min(10.0, float(score)))
        return cls(
            id=str(data["id"]),
            task_id=str(data["task_id"]),
            started_at=parse_datetime(data.get("started_at")) or datetime.now(),
            ended_at=parse_datetime(data.get("ended_at")),
            duration_minutes=int(data.get("duration_minutes") or 0),
            productivity_score=score,
        )
