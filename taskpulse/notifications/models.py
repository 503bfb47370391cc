"""
Tool: Proactive Notification Models
Purpose: Data structures for triggers, notifications and delivery results

Usage:
    from taskpulse.notifications.models import (
        ProactiveNotification,
        NotificationDraft,
        NotificationTrigger,
        NotificationDeliveryResult,
    )
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from taskpulse.tasks.models import Project, Task, WorkSession


@dataclass
class Snapshot:
    """
    State fetched by the host application for one scheduler tick.

    `insights` is the raw analysis payload of the latest health check, still
    unvalidated.
    """

    tasks: list[Task] = field(default_factory=list)
    sessions: list[WorkSession] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    insights: Any = None
    taken_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        """Build from store rows: {"tasks": [...], "sessions": [...], ...}."""
        return cls(
            tasks=[Task.from_dict(row) for row in data.get("tasks") or []],
            sessions=[WorkSession.from_dict(row) for row in data.get("sessions") or []],
            projects=[Project.from_dict(row) for row in data.get("projects") or []],
            insights=data.get("insights"),
        )


class NotificationType(str, Enum):
    ALERT = "alert"
    SUGGESTION = "suggestion"
    REMINDER = "reminder"


class NotificationPriority(int, Enum):
    """
    Notification priority tiers.

    Lower numbers are more important; each tier can be disabled in config.
    """

    HIGH = 1
    MEDIUM = 2
    LOW = 3


class NotificationCategory(str, Enum):
    """Category groups, each gated by one config flag."""

    PRODUCTIVITY = "productivity"      # enable_productivity_reminders
    TASK_HEALTH = "task_health"        # enable_task_health_alerts
    DEADLINE = "deadline"              # enable_deadline_warnings
    ACHIEVEMENT = "achievement"        # enable_achievement_celebrations
    ANALYSIS = "analysis"              # always allowed


# Task priority labels used in message drafts mapped to notification tiers
LABEL_PRIORITIES = {
    "urgent": NotificationPriority.HIGH,
    "high": NotificationPriority.HIGH,
    "medium": NotificationPriority.MEDIUM,
    "low": NotificationPriority.LOW,
}


def to_priority(value: Any) -> NotificationPriority:
    """Coerce a label ('high') or number (1-4) to a tier; out of range clamps."""
    if isinstance(value, NotificationPriority):
        return value
    if isinstance(value, str):
        return LABEL_PRIORITIES.get(value.lower(), NotificationPriority.LOW)
    number = int(value)
    return NotificationPriority(max(1, min(3, number)))


@dataclass
class NotificationAction:
    """A button offered alongside a notification."""

    label: str
    action: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationDraft:
    """
    Notification proposed by a check or trigger.

    The manager turns a draft into a ProactiveNotification once it passes
    deduplication and delivery gating.
    """

    type: NotificationType
    category: NotificationCategory
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    trigger_time: datetime | None = None  # None = now
    expires_at: datetime | None = None
    actions: list[NotificationAction] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProactiveNotification:
    """
    Notification owned by the NotificationManager.

    Lifecycle: queued -> delivered (active) -> read and/or dismissed.
    """

    id: str
    type: NotificationType
    category: NotificationCategory
    title: str
    message: str
    priority: NotificationPriority
    trigger_time: datetime
    created_at: datetime
    expires_at: datetime | None = None
    is_read: bool = False
    is_dismissed: bool = False
    delivered_at: datetime | None = None
    actions: list[NotificationAction] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def generate_id() -> str:
        """Generate a new notification ID."""
        return f"notif_{uuid.uuid4().hex[:12]}"

    @classmethod
    def from_draft(cls, draft: NotificationDraft, now: datetime) -> "ProactiveNotification":
        return cls(
            id=cls.generate_id(),
            type=draft.type,
            category=draft.category,
            title=draft.title,
            message=draft.message,
            priority=draft.priority,
            trigger_time=draft.trigger_time or now,
            created_at=now,
            expires_at=draft.expires_at,
            actions=list(draft.actions),
            metadata=dict(draft.metadata),
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def is_due(self, now: datetime) -> bool:
        return self.trigger_time <= now

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for the UI layer."""
        return {
            "id": self.id,
            "type": self.type.value,
            "category": self.category.value,
            "title": self.title,
            "message": self.message,
            "priority": int(self.priority),
            "trigger_time": self.trigger_time.isoformat(),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "is_read": self.is_read,
            "is_dismissed": self.is_dismissed,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "actions": [asdict(a) for a in self.actions],
            "metadata": self.metadata,
        }


@dataclass
class NotificationDeliveryResult:
    """
    Result of handing a notification to a delivery channel.
    """

    success: bool
    notification_id: str
    delivered_at: datetime
    channel: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["delivered_at"] = self.delivered_at.isoformat()
        return data


# =============================================================================
# Triggers
# =============================================================================


class ComparisonOperator(str, Enum):
    GTE = "gte"
    LTE = "lte"
    GT = "gt"
    LT = "lt"
    EQ = "eq"
    NEQ = "neq"


class FrequencyType(str, Enum):
    DAILY = "daily"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TriggerCondition:
    """
    Metric comparison deciding whether a trigger could fire.

    `type` names the metric computed from the snapshot; `parameters` tune
    that metric (e.g. the inactivity window in hours).
    """

    type: str
    threshold: float
    operator: ComparisonOperator = ComparisonOperator.GTE
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FrequencyPolicy:
    """
    How often a trigger may fire.

    DAILY triggers fire at most once per calendar day unless max_per_day
    says otherwise; CUSTOM triggers wait interval_minutes between fires.
    """

    type: FrequencyType = FrequencyType.DAILY
    interval_minutes: int | None = None
    max_per_day: int | None = None
    cooldown_minutes: int | None = None


@dataclass
class NotificationTrigger:
    id: str
    name: str
    condition: TriggerCondition
    title: str
    message_template: str  # str.format fields filled from the metric context
    notification_type: NotificationType = NotificationType.SUGGESTION
    category: NotificationCategory = NotificationCategory.PRODUCTIVITY
    priority: NotificationPriority = NotificationPriority.MEDIUM
    frequency: FrequencyPolicy = field(default_factory=FrequencyPolicy)
    is_active: bool = True
