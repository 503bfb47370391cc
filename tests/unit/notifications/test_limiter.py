"""Tests for taskpulse/notifications/limiter.py

Delivery gating: quiet hours (with overnight wrap), the per-clock-hour cap,
priority tiers and category groups, and the release gate used at hand-off.
"""

from datetime import datetime, timedelta

import pytest

from taskpulse.notifications.config import NotificationConfig, PrioritiesConfig
from taskpulse.notifications.limiter import (
    check_delivery,
    check_rate_limit,
    check_release,
    count_in_hour,
    is_in_quiet_hours,
    should_deliver,
)
from taskpulse.notifications.models import (
    NotificationCategory,
    NotificationPriority,
    ProactiveNotification,
)


@pytest.fixture
def make_notification(make_draft):
    def _make(created_at: datetime, **fields) -> ProactiveNotification:
        return ProactiveNotification.from_draft(make_draft(**fields), created_at)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Quiet Hours
# ─────────────────────────────────────────────────────────────────────────────


class TestQuietHours:
    @pytest.mark.parametrize("hour", [22, 23, 0, 1, 5, 7])
    def test_overnight_window_quiet(self, hour):
        assert is_in_quiet_hours(hour, 22, 8)

    @pytest.mark.parametrize("hour", [8, 9, 12, 17, 21])
    def test_overnight_window_open(self, hour):
        assert not is_in_quiet_hours(hour, 22, 8)

    @pytest.mark.parametrize("hour,expected", [(12, False), (13, True), (16, True), (17, False)])
    def test_daytime_window(self, hour, expected):
        assert is_in_quiet_hours(hour, 13, 17) is expected

    def test_equal_bounds_means_no_window(self):
        assert not any(is_in_quiet_hours(hour, 9, 9) for hour in range(24))

    def test_hour_23_blocks_delivery(self, make_notification, notification_config):
        """Should refuse at 23:00 with the default 22 -> 8 window."""
        late = datetime(2024, 3, 13, 23, 15)
        notification = make_notification(late, priority=NotificationPriority.HIGH)

        result = check_delivery(notification, [], notification_config, now=late)

        assert result == {"allowed": False, "reason": "quiet_hours"}


# ─────────────────────────────────────────────────────────────────────────────
# Rate Limit
# ─────────────────────────────────────────────────────────────────────────────


class TestRateLimit:
    def test_counts_same_clock_hour_only(self, make_notification, now):
        history = [
            make_notification(now.replace(minute=0)),
            make_notification(now.replace(minute=59)),
            make_notification(now.replace(minute=59) - timedelta(hours=1)),
        ]

        assert count_in_hour(history, now) == 2

    def test_third_in_same_hour_rejected(self, make_notification, now):
        config = NotificationConfig(max_notifications_per_hour=2)
        history = [make_notification(now - timedelta(minutes=5)), make_notification(now - timedelta(minutes=1))]
        candidate = make_notification(now)

        assert not should_deliver(candidate, history, config, now=now)

    def test_next_hour_bucket_accepted(self, make_notification, now):
        config = NotificationConfig(max_notifications_per_hour=2)
        history = [make_notification(now - timedelta(minutes=5)), make_notification(now - timedelta(minutes=1))]
        next_hour = now.replace(minute=0) + timedelta(hours=1)

        assert should_deliver(make_notification(next_hour), history, config, now=next_hour)

    def test_sixth_notification_rejected(self, make_notification, now, notification_config):
        history = [make_notification(now.replace(minute=m)) for m in (1, 5, 10, 15, 20)]

        result = check_delivery(make_notification(now), history, notification_config, now=now)

        assert result["reason"] == "rate_limit"

    def test_rate_limit_details(self, make_notification, now, notification_config):
        history = [make_notification(now)]

        assert check_rate_limit(history, notification_config, now) == {
            "allowed": True,
            "created_this_hour": 1,
            "limit": 5,
        }

    def test_zero_limit_blocks_everything(self, make_notification, now):
        config = NotificationConfig(max_notifications_per_hour=0)

        assert not should_deliver(make_notification(now), [], config, now=now)


# ─────────────────────────────────────────────────────────────────────────────
# Priority and Category Gates
# ─────────────────────────────────────────────────────────────────────────────


class TestGates:
    def test_disabled_priority(self, make_notification, now):
        config = NotificationConfig(priorities=PrioritiesConfig(enable_low=False))

        low = make_notification(now, priority=NotificationPriority.LOW)
        high = make_notification(now, priority=NotificationPriority.HIGH)

        assert check_delivery(low, [], config, now=now)["reason"] == "priority_disabled"
        assert check_delivery(high, [], config, now=now)["allowed"]

    @pytest.mark.parametrize(
        "flag,category",
        [
            ("enable_productivity_reminders", NotificationCategory.PRODUCTIVITY),
            ("enable_task_health_alerts", NotificationCategory.TASK_HEALTH),
            ("enable_deadline_warnings", NotificationCategory.DEADLINE),
            ("enable_achievement_celebrations", NotificationCategory.ACHIEVEMENT),
        ],
    )
    def test_disabled_category(self, make_notification, now, flag, category):
        config = NotificationConfig(**{flag: False})

        result = check_delivery(make_notification(now, category=category), [], config, now=now)

        assert result == {"allowed": False, "reason": "category_disabled"}

    def test_analysis_category_always_allowed(self, make_notification, now):
        config = NotificationConfig(
            enable_productivity_reminders=False,
            enable_task_health_alerts=False,
            enable_deadline_warnings=False,
            enable_achievement_celebrations=False,
        )

        assert should_deliver(make_notification(now, category=NotificationCategory.ANALYSIS), [], config, now=now)

    def test_quiet_hours_checked_first(self, make_notification):
        late = datetime(2024, 3, 13, 2, 0)
        config = NotificationConfig(max_notifications_per_hour=0, enable_productivity_reminders=False)

        assert check_delivery(make_notification(late), [], config, now=late)["reason"] == "quiet_hours"

    def test_pure(self, make_notification, now, notification_config):
        history = [make_notification(now)]
        before = list(history)

        should_deliver(make_notification(now), history, notification_config, now=now)

        assert history == before


class TestRelease:
    def test_ignores_hourly_cap(self, make_notification, now):
        config = NotificationConfig(max_notifications_per_hour=0)

        assert check_release(make_notification(now), config, now=now) == {"allowed": True, "reason": None}

    def test_quiet_hours(self, make_notification, notification_config):
        late = datetime(2024, 3, 13, 23, 15)

        assert check_release(make_notification(late), notification_config, now=late)["reason"] == "quiet_hours"

    def test_switches(self, make_notification, now):
        config = NotificationConfig(priorities=PrioritiesConfig(enable_medium=False))

        assert check_release(make_notification(now), config, now=now)["reason"] == "priority_disabled"
