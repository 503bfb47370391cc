"""Tests for taskpulse/notifications/dedup.py

Duplicate detection is literal (exact text + type) over a trailing window.
"""

from datetime import timedelta

from taskpulse.notifications.dedup import MessageLog
from taskpulse.notifications.models import NotificationType


FOLLOWUP = "🔔 You have 2 tasks that need follow-up: Call bank, Email Sam"


class TestIsDuplicate:
    """Tests for the window check."""

    def test_same_message_one_minute_later(self, now):
        """Should flag the second identical message inside the window."""
        log = MessageLog()
        log.record(FOLLOWUP, "alert", at=now)

        assert log.is_duplicate(FOLLOWUP, "alert", now=now + timedelta(minutes=1))

    def test_after_window_not_duplicate(self, now):
        log = MessageLog()
        log.record(FOLLOWUP, "alert", at=now)

        assert not log.is_duplicate(FOLLOWUP, "alert", now=now + timedelta(minutes=5, seconds=1))

    def test_window_boundary_is_inclusive(self, now):
        log = MessageLog()
        log.record(FOLLOWUP, "alert", at=now)

        assert log.is_duplicate(FOLLOWUP, "alert", now=now + timedelta(minutes=5))

    def test_custom_window(self, now):
        log = MessageLog()
        log.record(FOLLOWUP, "alert", at=now)

        assert log.is_duplicate(FOLLOWUP, "alert", window=timedelta(hours=1), now=now + timedelta(minutes=30))

    def test_type_is_part_of_key(self, now):
        log = MessageLog()
        log.record(FOLLOWUP, "alert", at=now)

        assert not log.is_duplicate(FOLLOWUP, "suggestion", now=now)

    def test_interpolated_data_differs(self, now):
        """Should not fuzzy-match messages that differ only in counts."""
        log = MessageLog()
        log.record("🔔 You have 2 tasks", "alert", at=now)

        assert not log.is_duplicate("🔔 You have 3 tasks", "alert", now=now)

    def test_enum_and_string_types_match(self, now):
        log = MessageLog()
        log.record(FOLLOWUP, NotificationType.ALERT, at=now)

        assert log.is_duplicate(FOLLOWUP, "alert", now=now)

    def test_check_does_not_record(self, now):
        log = MessageLog()

        assert not log.is_duplicate(FOLLOWUP, "alert", now=now)
        assert not log.is_duplicate(FOLLOWUP, "alert", now=now)
        assert len(log) == 0


class TestRetention:
    def test_old_entries_pruned_on_record(self, now):
        log = MessageLog(retention=timedelta(hours=1))
        log.record("old", "alert", at=now)
        log.record("new", "alert", at=now + timedelta(hours=2))

        assert len(log) == 1

    def test_clear(self, now):
        log = MessageLog()
        log.record(FOLLOWUP, "alert", at=now)
        log.clear()

        assert not log.is_duplicate(FOLLOWUP, "alert", now=now)
