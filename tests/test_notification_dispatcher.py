from datetime import datetime, timedelta

import pytest

from activityhub.errors import InvalidArgument, NotFound, PermissionDenied
from activityhub.models import db, Notification, NotificationType, NotificationPriority, Role
from activityhub.services.notification_service import NotificationDispatcher


class TestNotificationDispatcher:
    def test_notify_persists_and_signals_channel(self, student, faculty, channel):
        notification = NotificationDispatcher.notify(
            student.id, faculty.id, NotificationType.REMINDER,
            "Reminder", "Upload your internship certificate",
        )

        assert notification.id is not None
        assert notification.priority == NotificationPriority.NORMAL
        assert notification.is_read is False
        recipient_id, payload = channel.sent[0]
        assert recipient_id == student.id
        assert payload["type"] == "reminder"
        assert payload["message"] == "Upload your internship certificate"

    def test_channel_failure_keeps_notification(self, failing_channel, student):
        NotificationDispatcher.notify(student.id, None, "system", "Maintenance", "Tonight 10pm")
        assert Notification.query.filter_by(recipient_id=student.id).count() == 1

    def test_invalid_type_rejected(self, student):
        with pytest.raises(InvalidArgument):
            NotificationDispatcher.record(student.id, None, "gossip", "x", "y")

    def test_mark_read_only_by_recipient(self, student, make_user):
        notification = NotificationDispatcher.notify(student.id, None, "system", "Hi", "Hello")
        other = make_user(Role.STUDENT)

        with pytest.raises(PermissionDenied):
            NotificationDispatcher.mark_read(notification.id, other.id)

        read = NotificationDispatcher.mark_read(notification.id, student.id)
        assert read.is_read is True
        assert read.read_at is not None

    def test_mark_read_missing(self, student):
        with pytest.raises(NotFound):
            NotificationDispatcher.mark_read(42, student.id)

    def test_unread_count_and_mark_all(self, student):
        for i in range(3):
            NotificationDispatcher.notify(student.id, None, "announcement", f"News {i}", "Body")

        assert NotificationDispatcher.unread_count(student.id) == 3
        assert NotificationDispatcher.mark_all_read(student.id) == 3
        assert NotificationDispatcher.unread_count(student.id) == 0
        assert NotificationDispatcher.list_for(student.id, unread_only=True) == []

    def test_purge_expired_after_retention_window(self, student):
        old = NotificationDispatcher.notify(student.id, None, "system", "Old", "Old news")
        fresh = NotificationDispatcher.notify(student.id, None, "system", "Fresh", "Fresh news")
        old.created_at = datetime.utcnow() - timedelta(days=31)
        fresh.created_at = datetime.utcnow() - timedelta(days=29)
        db.session.commit()

        removed = NotificationDispatcher.purge_expired()

        assert removed == 1
        remaining = [n.title for n in NotificationDispatcher.list_for(student.id)]
        assert remaining == ["Fresh"]
