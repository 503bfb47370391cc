"""
Tool: Delivery Gate
Purpose: Decide whether a notification may be delivered right now

Checks (in order):
1. Not in quiet hours
2. Hourly cap not reached for the current clock hour
3. Priority tier enabled
4. Category group enabled

All functions are pure: they read the notification, the history of
already-created notifications and the config, and mutate nothing.

Usage:
    from taskpulse.notifications.limiter import should_deliver, check_delivery

    if should_deliver(notification, history, config, now=now):
        ...
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from taskpulse.notifications.config import NotificationConfig
from taskpulse.notifications.models import (
    NotificationCategory,
    NotificationPriority,
    ProactiveNotification,
)


_CATEGORY_FLAGS = {
    NotificationCategory.PRODUCTIVITY: "enable_productivity_reminders",
    NotificationCategory.TASK_HEALTH: "enable_task_health_alerts",
    NotificationCategory.DEADLINE: "enable_deadline_warnings",
    NotificationCategory.ACHIEVEMENT: "enable_achievement_celebrations",
}

_PRIORITY_FLAGS = {
    NotificationPriority.HIGH: "enable_high",
    NotificationPriority.MEDIUM: "enable_medium",
    NotificationPriority.LOW: "enable_low",
}


def is_in_quiet_hours(hour: int, start: int, end: int) -> bool:
    """
    Check if an hour falls in the quiet window [start, end).

    Overnight windows (e.g. 22 -> 8) wrap past midnight; start == end means
    there is no quiet window.
    """
    if start == end:
        return False
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def hour_bucket(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


def count_in_hour(history: Iterable[ProactiveNotification], now: datetime) -> int:
    """Notifications created in the same clock hour as now."""
    bucket = hour_bucket(now)
    return sum(1 for n in history if hour_bucket(n.created_at) == bucket)


def check_rate_limit(
    history: Iterable[ProactiveNotification],
    config: NotificationConfig,
    now: datetime,
) -> dict[str, Any]:
    """
    Returns:
        {"allowed": bool, "created_this_hour": int, "limit": int}
    """
    created = count_in_hour(history, now)
    limit = config.max_notifications_per_hour
    return {
        "allowed": created < limit,
        "created_this_hour": created,
        "limit": limit,
    }


def check_preferences(notification: ProactiveNotification, config: NotificationConfig) -> dict[str, Any]:
    """Priority and category switches only."""
    priority_flag = _PRIORITY_FLAGS.get(notification.priority)
    if priority_flag and not getattr(config.priorities, priority_flag):
        return {"allowed": False, "reason": "priority_disabled"}

    category_flag = _CATEGORY_FLAGS.get(notification.category)
    if category_flag and not getattr(config, category_flag):
        return {"allowed": False, "reason": "category_disabled"}

    return {"allowed": True, "reason": None}


def check_delivery(
    notification: ProactiveNotification,
    history: Iterable[ProactiveNotification],
    config: NotificationConfig,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Check if a notification can be delivered.

    Returns:
        {
            "allowed": bool,
            "reason": None | "quiet_hours" | "rate_limit"
                      | "priority_disabled" | "category_disabled",
        }
    """
    now = now or datetime.now()

    if is_in_quiet_hours(now.hour, config.quiet_hours_start, config.quiet_hours_end):
        return {"allowed": False, "reason": "quiet_hours"}

    if not check_rate_limit(history, config, now)["allowed"]:
        return {"allowed": False, "reason": "rate_limit"}

    return check_preferences(notification, config)


def check_release(
    notification: ProactiveNotification,
    config: NotificationConfig,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Gate a queued notification at hand-off time.

    Same as check_delivery minus the hourly cap, which was charged when the
    notification was created.
    """
    now = now or datetime.now()

    if is_in_quiet_hours(now.hour, config.quiet_hours_start, config.quiet_hours_end):
        return {"allowed": False, "reason": "quiet_hours"}

    return check_preferences(notification, config)


def should_deliver(
    notification: ProactiveNotification,
    history: Iterable[ProactiveNotification],
    config: NotificationConfig,
    now: datetime | None = None,
) -> bool:
    return check_delivery(notification, history, config, now)["allowed"]
