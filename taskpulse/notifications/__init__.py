"""Proactive Notifications - timed nudges about the user's tasks

Philosophy:
    A notification has to earn the interruption. Repeats are suppressed,
    nothing is delivered during quiet hours, and each category can be turned
    off. A check that fails costs one notification, never the whole tick.

Design Principles:
    1. Declarative Triggers - conditions and templates are data, metrics are code
    2. Dedup Window - identical messages within minutes are dropped
    3. Quiet Hours - overnight windows wrap past midnight
    4. Fail Closed - an evaluation error means "did not fire"

Components:
    models.py: Notification, draft, trigger and delivery result records
    config.py: pydantic config loaded from args/notifications.yaml
    dedup.py: Trailing-window message log
    limiter.py: Quiet hours, hourly cap, priority and category gates
    triggers.py: Trigger registry and metric table
    manager.py: Queue, active list and user actions
    checks.py: Smart-messaging checks run on every tick
    scheduler.py: Timer state machine with pause/resume
"""

from taskpulse.notifications.config import (
    ConfigError,
    NotificationConfig,
    SchedulerConfig,
    TaskPulseConfig,
    load_config,
)
from taskpulse.notifications.manager import NotificationManager
from taskpulse.notifications.models import (
    NotificationCategory,
    NotificationDeliveryResult,
    NotificationDraft,
    NotificationPriority,
    NotificationTrigger,
    NotificationType,
    ProactiveNotification,
    Snapshot,
)

__all__ = [
    "ConfigError",
    "NotificationCategory",
    "NotificationConfig",
    "NotificationDeliveryResult",
    "NotificationDraft",
    "NotificationManager",
    "NotificationPriority",
    "NotificationTrigger",
    "NotificationType",
    "ProactiveNotification",
    "SchedulerConfig",
    "Snapshot",
    "TaskPulseConfig",
    "load_config",
]
