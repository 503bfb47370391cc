"""
Tool: Notification Triggers
Purpose: Declarative rules deciding when a notification could fire

A trigger is a record: a metric condition, a message template and a
frequency policy. The evaluator is generic; adding a trigger needs no code
unless it introduces a new metric, which is one function registered in
METRICS.

Features:
- Metric table keyed by condition type
- Operators: gte, lte, gt, lt, eq, neq
- Cooldown, interval and max-per-day bookkeeping (in memory)
- Fail-closed evaluation: a failing metric means "did not fire"

Usage:
    from taskpulse.notifications.triggers import TriggerRegistry

    registry = TriggerRegistry()
    for trigger, draft in registry.fire_due_triggers(snapshot, now):
        ...
        registry.record_fire(trigger.id, now)
"""

from __future__ import annotations

import operator
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Callable

from taskpulse.logging_config import get_logger
from taskpulse.notifications.models import (
    ComparisonOperator,
    FrequencyPolicy,
    FrequencyType,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationTrigger,
    NotificationType,
    Snapshot,
    TriggerCondition,
)
from taskpulse.result import Err, Ok, Result, capture
from taskpulse.scoring.context import productivity_ratio
from taskpulse.tasks.hierarchy import get_open_tasks

logger = get_logger(__name__)


# Metric functions return (value, template fields)
Metric = Callable[[Snapshot, dict[str, Any], datetime], tuple[float, dict[str, Any]]]

OPERATORS: dict[ComparisonOperator, Callable[[float, float], bool]] = {
    ComparisonOperator.GTE: operator.ge,
    ComparisonOperator.LTE: operator.le,
    ComparisonOperator.GT: operator.gt,
    ComparisonOperator.LT: operator.lt,
    ComparisonOperator.EQ: operator.eq,
    ComparisonOperator.NEQ: operator.ne,
}


def stale_tasks_metric(
    snapshot: Snapshot, parameters: dict[str, Any], now: datetime
) -> tuple[float, dict[str, Any]]:
    """Open tasks with no recorded activity in the last `inactive_hours`."""
    cutoff = now - timedelta(hours=parameters.get("inactive_hours", 48))
    stale = [
        t for t in get_open_tasks(snapshot.tasks)
        if (t.last_activity_at or t.updated_at or t.created_at) < cutoff
    ]
    return float(len(stale)), {
        "count": len(stale),
        "titles": ", ".join(t.title for t in stale[:3]),
        "task_ids": [t.id for t in stale],
    }


def productivity_ratio_metric(
    snapshot: Snapshot, parameters: dict[str, Any], now: datetime
) -> tuple[float, dict[str, Any]]:
    """Today's session productivity over the historical average."""
    ratio = productivity_ratio(snapshot.sessions, now)
    return ratio, {"ratio": ratio, "percent": round((ratio - 1) * 100)}


METRICS: dict[str, Metric] = {
    "stale_tasks": stale_tasks_metric,
    "productivity_ratio": productivity_ratio_metric,
}


def default_triggers() -> list[NotificationTrigger]:
    return [
        NotificationTrigger(
            id="stale_tasks",
            name="Stale tasks",
            condition=TriggerCondition(
                type="stale_tasks",
                threshold=3,
                operator=ComparisonOperator.GTE,
                parameters={"inactive_hours": 48},
            ),
            title="Tasks waiting for you",
            message_template=(
                "🕸️ {count} tasks have had no activity in the last 2 days: {titles}. "
                "Want to pick one back up?"
            ),
            notification_type=NotificationType.REMINDER,
            category=NotificationCategory.TASK_HEALTH,
            priority=NotificationPriority.MEDIUM,
            frequency=FrequencyPolicy(type=FrequencyType.DAILY, cooldown_minutes=360),
        ),
        NotificationTrigger(
            id="productivity_peak",
            name="Productivity peak",
            condition=TriggerCondition(
                type="productivity_ratio",
                threshold=1.3,
                operator=ComparisonOperator.GTE,
            ),
            title="You're on a roll",
            message_template=(
                "🚀 Your productivity today is {percent}% above your average. "
                "Good moment to tackle a demanding task."
            ),
            notification_type=NotificationType.SUGGESTION,
            category=NotificationCategory.PRODUCTIVITY,
            priority=NotificationPriority.LOW,
            frequency=FrequencyPolicy(
                type=FrequencyType.CUSTOM, interval_minutes=120, max_per_day=3
            ),
        ),
    ]


class TriggerRegistry:
    """Holds trigger definitions and their fire history."""

    def __init__(
        self,
        triggers: list[NotificationTrigger] | None = None,
        metrics: dict[str, Metric] | None = None,
    ):
        self._triggers: dict[str, NotificationTrigger] = {}
        self.metrics: dict[str, Metric] = dict(METRICS if metrics is None else metrics)
        self._fires: dict[str, list[datetime]] = defaultdict(list)

        for trigger in default_triggers() if triggers is None else triggers:
            self.register(trigger)

    def register(self, trigger: NotificationTrigger) -> None:
        self._triggers[trigger.id] = trigger

    def unregister(self, trigger_id: str) -> bool:
        self._fires.pop(trigger_id, None)
        return self._triggers.pop(trigger_id, None) is not None

    def register_metric(self, name: str, metric: Metric) -> None:
        self.metrics[name] = metric

    def get(self, trigger_id: str) -> NotificationTrigger | None:
        return self._triggers.get(trigger_id)

    def list_triggers(self, active_only: bool = False) -> list[NotificationTrigger]:
        return [t for t in self._triggers.values() if t.is_active or not active_only]

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def measure(
        self, condition: TriggerCondition, snapshot: Snapshot, now: datetime
    ) -> tuple[float, dict[str, Any]]:
        metric = self.metrics.get(condition.type)
        if metric is None:
            raise KeyError(f"Unknown condition type: {condition.type}")
        return metric(snapshot, dict(condition.parameters), now)

    def evaluate(
        self, trigger: NotificationTrigger, snapshot: Snapshot, now: datetime | None = None
    ) -> bool:
        """
        Apply the trigger's operator to its metric and threshold.

        Raises whatever the metric raises; use evaluate_safely in loops.
        """
        now = now or datetime.now()
        value, _ = self.measure(trigger.condition, snapshot, now)
        compare = OPERATORS[ComparisonOperator(trigger.condition.operator)]
        return bool(compare(value, trigger.condition.threshold))

    def evaluate_safely(
        self, trigger: NotificationTrigger, snapshot: Snapshot, now: datetime | None = None
    ) -> Result[bool]:
        return capture(self.evaluate, trigger, snapshot, now)

    # -------------------------------------------------------------------------
    # Frequency bookkeeping
    # -------------------------------------------------------------------------

    def can_fire(self, trigger: NotificationTrigger, now: datetime | None = None) -> bool:
        """Check cooldown, interval and daily cap against the fire history."""
        now = now or datetime.now()
        fires = self._fires.get(trigger.id, [])
        if not fires:
            return True

        policy = trigger.frequency
        last = fires[-1]

        if policy.cooldown_minutes and now - last < timedelta(minutes=policy.cooldown_minutes):
            return False

        if policy.type == FrequencyType.CUSTOM and policy.interval_minutes:
            if now - last < timedelta(minutes=policy.interval_minutes):
                return False

        fired_today = sum(1 for f in fires if f.date() == now.date())
        max_per_day = policy.max_per_day
        if max_per_day is None and policy.type == FrequencyType.DAILY:
            max_per_day = 1
        if max_per_day is not None and fired_today >= max_per_day:
            return False

        return True

    def record_fire(self, trigger_id: str, at: datetime | None = None) -> None:
        at = at or datetime.now()
        fires = self._fires[trigger_id]
        fires.append(at)
        # Only today's and yesterday's fires matter for any policy
        cutoff = at - timedelta(days=2)
        self._fires[trigger_id] = [f for f in fires if f >= cutoff]

    def fire_count(self, trigger_id: str) -> int:
        return len(self._fires.get(trigger_id, []))

    # -------------------------------------------------------------------------
    # Drafting
    # -------------------------------------------------------------------------

    def build_draft(
        self, trigger: NotificationTrigger, snapshot: Snapshot, now: datetime
    ) -> NotificationDraft:
        _, fields = self.measure(trigger.condition, snapshot, now)
        return NotificationDraft(
            type=trigger.notification_type,
            category=trigger.category,
            title=trigger.title,
            message=trigger.message_template.format(**fields),
            priority=trigger.priority,
            metadata={"trigger_id": trigger.id, **fields},
        )

    def fire_due_triggers(
        self, snapshot: Snapshot, now: datetime | None = None
    ) -> list[tuple[NotificationTrigger, NotificationDraft]]:
        """
        Evaluate every active trigger allowed to fire.

        Fail-closed: a trigger whose evaluation or drafting raises is logged
        and skipped. Fires are not recorded here; the caller records them once
        the notification is actually created.
        """
        now = now or datetime.now()
        drafts = []

        for trigger in self.list_triggers(active_only=True):
            if not self.can_fire(trigger, now):
                continue

            result = self.evaluate_safely(trigger, snapshot, now)
            if isinstance(result, Err):
                logger.warning("trigger_evaluation_failed", trigger_id=trigger.id, error=result.error)
                continue
            if not result.value:
                continue

            draft = capture(self.build_draft, trigger, snapshot, now)
            if isinstance(draft, Ok):
                drafts.append((trigger, draft.value))
            else:
                logger.warning("trigger_draft_failed", trigger_id=trigger.id, error=draft.error)

        return drafts
