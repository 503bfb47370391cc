"""
Tool: Proactive Notification Manager
Purpose: Own the notification queue, active list and dedup log

The manager is the only writer of notification state. Checks propose
drafts; the manager applies deduplication and delivery gating, queues what
survives, and moves delivered notifications to the active list.

Usage:
    from taskpulse.notifications.manager import NotificationManager

    manager = NotificationManager(config)
    notification = manager.create_notification(draft)
    results = await manager.deliver_pending_notifications(handler)
    manager.mark_as_read(notification.id)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from taskpulse.logging_config import get_logger
from taskpulse.notifications.config import NotificationConfig, apply_config_update
from taskpulse.notifications.dedup import MessageLog
from taskpulse.notifications.limiter import check_delivery, check_release
from taskpulse.notifications.models import (
    NotificationDeliveryResult,
    NotificationDraft,
    NotificationPriority,
    ProactiveNotification,
)

logger = get_logger(__name__)

DeliveryHandler = Callable[[ProactiveNotification], Awaitable[NotificationDeliveryResult]]

# Created notifications kept for the hourly cap
HISTORY_RETENTION = timedelta(hours=2)


class NotificationManager:
    """Queue, active list and dedup log for one user session."""

    def __init__(
        self,
        config: NotificationConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or NotificationConfig()
        self.clock = clock
        self.message_log = MessageLog()
        self._queue: list[ProactiveNotification] = []
        self._in_flight: list[ProactiveNotification] = []
        self._active: list[ProactiveNotification] = []
        self._history: list[ProactiveNotification] = []
        self._suppressed: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def is_duplicate(self, draft: NotificationDraft, now: datetime | None = None) -> bool:
        window = timedelta(minutes=self.config.dedup_window_minutes)
        return self.message_log.is_duplicate(
            draft.message, draft.type, window=window, now=now or self.clock()
        )

    def create_notification(self, draft: NotificationDraft) -> ProactiveNotification | None:
        """
        Queue a notification unless it is a duplicate or may not be delivered.

        Returns:
            The queued notification, or None if it was suppressed
        """
        now = self.clock()

        if self.is_duplicate(draft, now):
            self._note_suppressed("duplicate", draft)
            return None

        notification = ProactiveNotification.from_draft(draft, now)
        gate = check_delivery(notification, self._history, self.config, now)
        if not gate["allowed"]:
            self._note_suppressed(gate["reason"], draft)
            return None

        self._queue.append(notification)
        self._history.append(notification)
        self.message_log.record(draft.message, draft.type, at=now)
        self._prune_history(now)

        logger.info(
            "notification_queued",
            notification_id=notification.id,
            category=notification.category.value,
            priority=int(notification.priority),
        )
        return notification

    def _note_suppressed(self, reason: str, draft: NotificationDraft) -> None:
        self._suppressed[reason] = self._suppressed.get(reason, 0) + 1
        logger.debug("notification_suppressed", reason=reason, title=draft.title)

    def _prune_history(self, now: datetime) -> None:
        cutoff = now - HISTORY_RETENTION
        self._history = [n for n in self._history if n.created_at >= cutoff]

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    async def deliver_pending_notifications(
        self,
        handler: DeliveryHandler,
    ) -> list[NotificationDeliveryResult]:
        """
        Hand every due notification to the delivery handler.

        Expired notifications are dropped. Quiet hours hold a notification in
        the queue until they end; a priority or category switched off since
        creation drops it. A handler that raises produces a failed result and
        puts the notification back in the queue for the next round; other
        notifications are unaffected.

        Each notification is claimed before the handler is awaited, so
        overlapping calls never hand the same notification over twice.

        Args:
            handler: async callable returning a NotificationDeliveryResult

        Returns:
            One result per attempted notification
        """
        now = self.clock()
        results = []

        due = sorted(
            (n for n in self._queue if n.is_due(now)),
            key=lambda n: (int(n.priority), n.trigger_time),
        )

        for notification in due:
            # Claimed or dropped by another call while this one was awaiting
            if notification not in self._queue:
                continue

            if notification.is_expired(now):
                self._queue.remove(notification)
                logger.info("notification_expired", notification_id=notification.id)
                continue

            gate = check_release(notification, self.config, now)
            if not gate["allowed"]:
                if gate["reason"] == "quiet_hours":
                    logger.debug("notification_delivery_deferred", notification_id=notification.id)
                else:
                    self._queue.remove(notification)
                    self._suppressed[gate["reason"]] = self._suppressed.get(gate["reason"], 0) + 1
                    logger.info(
                        "notification_withheld",
                        notification_id=notification.id,
                        reason=gate["reason"],
                    )
                continue

            self._queue.remove(notification)
            self._in_flight.append(notification)
            try:
                result = await handler(notification)
            except Exception as e:
                logger.warning(
                    "notification_delivery_failed",
                    notification_id=notification.id,
                    error=str(e),
                )
                result = NotificationDeliveryResult(
                    success=False,
                    notification_id=notification.id,
                    delivered_at=self.clock(),
                    channel="unknown",
                    error=str(e),
                )
            else:
                if not result.success:
                    logger.warning(
                        "notification_delivery_failed",
                        notification_id=notification.id,
                        channel=result.channel,
                        error=result.error,
                    )
            finally:
                self._in_flight.remove(notification)

            results.append(result)
            if result.success:
                notification.delivered_at = result.delivered_at
                self._active.append(notification)
            else:
                self._queue.append(notification)

        return results

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    def _find_active(self, notification_id: str) -> ProactiveNotification | None:
        return next((n for n in self._active if n.id == notification_id), None)

    def mark_as_read(self, notification_id: str) -> bool:
        notification = self._find_active(notification_id)
        if notification is None:
            return False
        notification.is_read = True
        return True

    def dismiss_notification(self, notification_id: str) -> bool:
        notification = self._find_active(notification_id)
        if notification is None:
            return False
        notification.is_dismissed = True
        return True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_active_notifications(self) -> list[ProactiveNotification]:
        return [n for n in self._active if not n.is_dismissed]

    def get_pending_notifications(self) -> list[ProactiveNotification]:
        return list(self._queue)

    def get_unread_notifications(self) -> list[ProactiveNotification]:
        return [n for n in self.get_active_notifications() if not n.is_read]

    def get_critical_notifications(self) -> list[ProactiveNotification]:
        return [
            n for n in self.get_active_notifications()
            if n.priority == NotificationPriority.HIGH
        ]

    def has_pending(self, predicate: Callable[[ProactiveNotification], bool]) -> bool:
        return any(predicate(n) for n in (*self._queue, *self._in_flight))

    def has_any(self, predicate: Callable[[ProactiveNotification], bool]) -> bool:
        return any(predicate(n) for n in (*self._queue, *self._in_flight, *self._active))

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    def update_config(self, partial: dict[str, Any]) -> NotificationConfig:
        """
        Apply a partial config update.

        Raises:
            ConfigError: the update is out of range; the current config is kept
        """
        self.config = apply_config_update(self.config, partial)
        logger.info("notification_config_updated", keys=sorted(partial))
        return self.config

    def get_config(self) -> NotificationConfig:
        return self.config

    def get_stats(self) -> dict[str, Any]:
        active = self.get_active_notifications()
        return {
            "pending": len(self._queue) + len(self._in_flight),
            "active": len(active),
            "unread": sum(1 for n in active if not n.is_read),
            "dismissed": sum(1 for n in self._active if n.is_dismissed),
            "suppressed": dict(self._suppressed),
        }
