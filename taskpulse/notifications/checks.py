"""
Tool: Smart Messaging Checks
Purpose: Look at a task snapshot and propose notifications

Each check is an async callable taking (snapshot, manager). It drafts
notifications and hands them to manager.create_notification, which applies
dedup and delivery gating, and returns the notifications actually created.
The scheduler wraps every check in capture_async, so a check that raises is
reported as an Err for that check only.

Checks:
- check_followup_tasks: tasks flagged for follow-up
- check_inactive_tasks: open tasks with no work or communication for 3 days
- check_upcoming_deadlines: due within 24h (alert) or this week (suggestion)
- check_due_reminders: one reminder per task due within 48h
- check_overdue_tasks: warning once more than 3 tasks are overdue
- check_daily_goal: celebration when today's completions reach the goal
- check_productivity_insights: actionable insights from the latest analysis
- trigger check (make_trigger_check): drafts from the trigger registry

Manual runs (run_task_analysis, run_productivity_analysis) use the same
drafting helpers and fall back to a single analysis notification when the
helpers found nothing.

Usage:
    from taskpulse.notifications.checks import default_checks

    checks = default_checks(registry)
    created = await check_followup_tasks(snapshot, manager)
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from taskpulse.insights.parser import parse_insights_or_default
from taskpulse.logging_config import get_logger
from taskpulse.notifications.manager import NotificationManager
from taskpulse.notifications.models import (
    NotificationAction,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationType,
    ProactiveNotification,
    Snapshot,
)
from taskpulse.notifications.triggers import TriggerRegistry
from taskpulse.tasks.hierarchy import (
    get_completed_on,
    get_open_tasks,
    get_overdue_tasks,
    get_tasks_due_between,
    get_tasks_needing_followup,
    get_tasks_without_recent_activity,
)

logger = get_logger(__name__)

Check = Callable[[Snapshot, NotificationManager], Awaitable[list[ProactiveNotification]]]

INACTIVE_DAYS = 3
OVERDUE_WARNING_THRESHOLD = 3

# (max hours until due, priority, send delay, title, message template)
REMINDER_TIERS = [
    (2, NotificationPriority.HIGH, timedelta(0),
     "🚨 Urgent task due soon",
     '"{title}" is due in {due_in}. Time to act!'),
    (24, NotificationPriority.MEDIUM, timedelta(minutes=15),
     "⏰ Reminder: task due today",
     '"{title}" is due today. Have you started on it?'),
    (48, NotificationPriority.LOW, timedelta(hours=1),
     "📅 Task due tomorrow",
     '"{title}" is due tomorrow. It would be good to plan it for today.'),
]


def _create_all(manager: NotificationManager, drafts: list[NotificationDraft]) -> list[ProactiveNotification]:
    created = []
    for draft in drafts:
        notification = manager.create_notification(draft)
        if notification is not None:
            created.append(notification)
    return created


def _ellipsis(count: int, shown: int) -> str:
    return "..." if count > shown else ""


# =============================================================================
# Task checks
# =============================================================================

def followup_drafts(snapshot: Snapshot) -> list[NotificationDraft]:
    tasks = get_open_tasks(get_tasks_needing_followup(snapshot.tasks))
    if not tasks:
        return []

    titles = ", ".join(t.title for t in tasks[:3])
    return [NotificationDraft(
        type=NotificationType.ALERT,
        category=NotificationCategory.TASK_HEALTH,
        title="Follow-up needed",
        message=(
            f"🔔 You have {len(tasks)} tasks that need follow-up: "
            f"{titles}{_ellipsis(len(tasks), 3)}"
        ),
        priority=NotificationPriority.HIGH,
        metadata={"type": "followup", "task_ids": [t.id for t in tasks]},
    )]


async def check_followup_tasks(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    return _create_all(manager, followup_drafts(snapshot))


def inactive_drafts(snapshot: Snapshot, now: datetime) -> list[NotificationDraft]:
    tasks = get_tasks_without_recent_activity(
        get_open_tasks(snapshot.tasks), days_since=INACTIVE_DAYS, now=now
    )
    if not tasks:
        return []

    titles = ", ".join(t.title for t in tasks[:2])
    return [NotificationDraft(
        type=NotificationType.SUGGESTION,
        category=NotificationCategory.TASK_HEALTH,
        title="Tasks without activity",
        message=f"💡 Some tasks have had no activity for a while: {titles}. Need help prioritizing them?",
        priority=NotificationPriority.MEDIUM,
        metadata={"type": "inactive", "task_ids": [t.id for t in tasks]},
    )]


async def check_inactive_tasks(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    return _create_all(manager, inactive_drafts(snapshot, manager.clock()))


def deadline_drafts(snapshot: Snapshot, now: datetime) -> list[NotificationDraft]:
    tomorrow = now + timedelta(hours=24)
    next_week = now + timedelta(days=7)

    urgent = get_tasks_due_between(snapshot.tasks, now, tomorrow)
    soon = get_tasks_due_between(snapshot.tasks, tomorrow, next_week, include_start=False)

    drafts = []
    if urgent:
        more = f" and {len(urgent) - 1} more" if len(urgent) > 1 else ""
        drafts.append(NotificationDraft(
            type=NotificationType.ALERT,
            category=NotificationCategory.DEADLINE,
            title="Deadlines approaching",
            message=f"⚠️ {len(urgent)} tasks are due soon: {urgent[0].title}{more}",
            priority=NotificationPriority.HIGH,
            metadata={"type": "urgent_deadline", "task_ids": [t.id for t in urgent]},
        ))
    if soon:
        drafts.append(NotificationDraft(
            type=NotificationType.SUGGESTION,
            category=NotificationCategory.DEADLINE,
            title="Deadlines this week",
            message=f"📅 You have {len(soon)} tasks due this week. Want help planning them?",
            priority=NotificationPriority.MEDIUM,
            metadata={"type": "upcoming_deadline", "task_ids": [t.id for t in soon]},
        ))
    return drafts


async def check_upcoming_deadlines(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    return _create_all(manager, deadline_drafts(snapshot, manager.clock()))


def _reminder_draft(task, now: datetime) -> NotificationDraft | None:
    hours_until_due = math.ceil((task.due_date - now).total_seconds() / 3600)
    for max_hours, priority, delay, title, template in REMINDER_TIERS:
        if hours_until_due <= max_hours:
            due_in = "less than an hour" if hours_until_due <= 0 else f"{hours_until_due} hours"
            return NotificationDraft(
                type=NotificationType.REMINDER,
                category=NotificationCategory.DEADLINE,
                title=title,
                message=template.format(title=task.title, due_in=due_in),
                priority=priority,
                trigger_time=now + delay,
                actions=[NotificationAction(label="Open task", action="open_task", payload={"task_id": task.id})],
                metadata={
                    "type": "due_reminder",
                    "task_id": task.id,
                    "due_date": task.due_date.isoformat(),
                    "task_priority": task.priority.value,
                },
            )
    return None


async def check_due_reminders(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    """One reminder per open task due within 48 hours, unless one is already queued."""
    now = manager.clock()
    created = []

    for task in get_tasks_due_between(snapshot.tasks, now, now + timedelta(hours=48)):
        if manager.has_pending(
            lambda n, task_id=task.id: n.type == NotificationType.REMINDER
            and n.metadata.get("task_id") == task_id
        ):
            continue

        draft = _reminder_draft(task, now)
        if draft is None:
            continue
        notification = manager.create_notification(draft)
        if notification is not None:
            created.append(notification)

    return created


async def check_overdue_tasks(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    overdue = get_overdue_tasks(snapshot.tasks, now=manager.clock())
    if len(overdue) <= OVERDUE_WARNING_THRESHOLD:
        return []

    draft = NotificationDraft(
        type=NotificationType.ALERT,
        category=NotificationCategory.DEADLINE,
        title="⚠️ Multiple overdue tasks",
        message=f"You have {len(overdue)} overdue tasks. Do you need to rearrange your priorities?",
        priority=NotificationPriority.MEDIUM,
        metadata={
            "type": "overdue_warning",
            "overdue_count": len(overdue),
            "task_ids": [t.id for t in overdue[:5]],
        },
    )
    return _create_all(manager, [draft])


async def check_daily_goal(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    """Celebrate reaching the daily goal, at most once per calendar date."""
    now = manager.clock()
    today = now.date().isoformat()
    completed = get_completed_on(snapshot.tasks, now.date())

    if len(completed) < manager.config.daily_goal_tasks:
        return []

    if manager.has_any(
        lambda n: n.metadata.get("type") == "daily_goal_celebration"
        and n.metadata.get("date") == today
    ):
        return []

    draft = NotificationDraft(
        type=NotificationType.SUGGESTION,
        category=NotificationCategory.ACHIEVEMENT,
        title="🎉 Daily goal reached!",
        message=f"Congratulations! You've completed {len(completed)} tasks today. Great work!",
        priority=NotificationPriority.LOW,
        metadata={"type": "daily_goal_celebration", "completed_count": len(completed), "date": today},
    )
    return _create_all(manager, [draft])


# =============================================================================
# Analysis checks
# =============================================================================

def insight_drafts(snapshot: Snapshot) -> list[NotificationDraft]:
    """One suggestion per actionable insight; unparseable insights give none."""
    insights = parse_insights_or_default(snapshot.insights)
    return [
        NotificationDraft(
            type=NotificationType.SUGGESTION,
            category=NotificationCategory.PRODUCTIVITY,
            title=insight.title,
            message=f"📊 {insight.title}: {insight.description}",
            priority=NotificationPriority.HIGH if insight.priority >= 3 else NotificationPriority.MEDIUM,
            metadata={"type": "productivity_insight", "insight": insight.model_dump()},
        )
        for insight in insights
        if insight.is_actionable
    ]


async def check_productivity_insights(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    return _create_all(manager, insight_drafts(snapshot))


def make_trigger_check(registry: TriggerRegistry) -> Check:
    """Wrap a trigger registry as a check; fires are recorded on creation."""

    async def check_triggers(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
        now = manager.clock()
        created = []
        for trigger, draft in registry.fire_due_triggers(snapshot, now):
            notification = manager.create_notification(draft)
            if notification is not None:
                registry.record_fire(trigger.id, now)
                created.append(notification)
        return created

    return check_triggers


TASK_CHECKS: list[Check] = [
    check_followup_tasks,
    check_inactive_tasks,
    check_upcoming_deadlines,
    check_due_reminders,
    check_overdue_tasks,
    check_daily_goal,
]


def default_checks(registry: TriggerRegistry | None = None) -> list[Check]:
    checks = [*TASK_CHECKS, check_productivity_insights]
    if registry is not None:
        checks.append(make_trigger_check(registry))
    return checks


# =============================================================================
# Manual analysis
# =============================================================================

async def run_task_analysis(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    """
    Run the task checks in order for a manual "analyze now" request.

    When none of the checks found anything a low-priority all-clear
    suggestion is created so the user sees the analysis happened. Findings
    that dedup or gating kept from being created still count as findings.
    """
    now = manager.clock()
    drafts = [
        *followup_drafts(snapshot),
        *inactive_drafts(snapshot, now),
        *deadline_drafts(snapshot, now),
    ]
    created = _create_all(manager, drafts)

    if not drafts:
        notification = manager.create_notification(NotificationDraft(
            type=NotificationType.SUGGESTION,
            category=NotificationCategory.ANALYSIS,
            title="Analysis complete",
            message="✅ Analysis complete: your tasks are up to date. Nice job staying organized!",
            priority=NotificationPriority.LOW,
            metadata={"type": "analysis_complete", "manual": True},
        ))
        if notification is not None:
            created.append(notification)

    logger.info("manual_task_analysis_complete", found=len(drafts), created=len(created))
    return created


async def run_productivity_analysis(snapshot: Snapshot, manager: NotificationManager) -> list[ProactiveNotification]:
    """
    Surface the latest insights for a manual "analyze productivity" request.

    Without any actionable insight a suggestion to run a new analysis is
    created instead.
    """
    drafts = insight_drafts(snapshot)
    created = _create_all(manager, drafts)

    if not drafts:
        notification = manager.create_notification(NotificationDraft(
            type=NotificationType.SUGGESTION,
            category=NotificationCategory.ANALYSIS,
            title="No new insights",
            message="📊 Productivity analysis: no new insights available. Run an AI analysis to generate data.",
            priority=NotificationPriority.MEDIUM,
            metadata={"type": "productivity_analysis", "manual": True},
        ))
        if notification is not None:
            created.append(notification)

    logger.info("manual_productivity_analysis_complete", found=len(drafts), created=len(created))
    return created
