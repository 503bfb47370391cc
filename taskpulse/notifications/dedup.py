"""
Tool: Message Deduplication
Purpose: Suppress repeats of a message sent within a trailing window

Matching is literal: the key is (exact message text, notification type).
Messages that differ only in interpolated data ("2 tasks" vs "3 tasks")
are different keys and are not suppressed.

Usage:
    from taskpulse.notifications.dedup import MessageLog

    log = MessageLog()
    if not log.is_duplicate(message, "alert", now=now):
        send(message)
        log.record(message, "alert", at=now)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


DEFAULT_WINDOW = timedelta(minutes=5)

# Entries older than this are dropped on record()
RETENTION = timedelta(hours=24)


@dataclass(frozen=True)
class SentMessage:
    content: str
    type: str
    sent_at: datetime


class MessageLog:
    """In-memory log of sent messages used for duplicate checks."""

    def __init__(self, retention: timedelta = RETENTION):
        self.retention = retention
        self._messages: list[SentMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    def is_duplicate(
        self,
        content: str,
        notification_type: str,
        window: timedelta = DEFAULT_WINDOW,
        now: datetime | None = None,
    ) -> bool:
        """
        True if the same (content, type) was recorded within the window.

        Read-only; the caller records the message after a successful send.
        """
        now = now or datetime.now()
        cutoff = now - window
        notification_type = getattr(notification_type, "value", notification_type)
        return any(
            m.content == content and m.type == notification_type and m.sent_at >= cutoff
            for m in self._messages
        )

    def record(self, content: str, notification_type: str, at: datetime | None = None) -> None:
        at = at or datetime.now()
        notification_type = getattr(notification_type, "value", notification_type)
        self._messages.append(SentMessage(content=content, type=notification_type, sent_at=at))
        self._prune(at)

    def clear(self) -> None:
        self._messages.clear()

    def _prune(self, now: datetime) -> None:
        cutoff = now - self.retention
        self._messages = [m for m in self._messages if m.sent_at >= cutoff]
