import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import update

from activityhub.delivery import get_channel
from activityhub.errors import NotFound, PermissionDenied
from activityhub.models import db, Notification, NotificationType, NotificationPriority
from activityhub.validators import parse_enum

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Durable-first notifications: the row is persisted before the delivery
    channel is signalled, and a channel failure never undoes the row.
    """

    @staticmethod
    def record(recipient_id, sender_id, type, title, message,
               related_activity_id=None, priority=NotificationPriority.NORMAL, link=None):
        """Adds a Notification to the session without committing (caller owns the transaction)."""
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=parse_enum(NotificationType, type, 'type'),
            title=title,
            message=message,
            related_activity_id=related_activity_id,
            priority=parse_enum(NotificationPriority, priority, 'priority'),
            link=link,
        )
        db.session.add(notification)
        return notification

    @staticmethod
    def deliver(notifications):
        """Best-effort signal to the delivery channel for already-committed notifications."""
        channel = get_channel()
        for notification in notifications:
            try:
                channel.send(notification.recipient_id, notification.to_dict())
            except Exception:
                logger.exception("Delivery failed for notification %s to user %s",
                                 notification.id, notification.recipient_id)

    @staticmethod
    def notify(recipient_id, sender_id, type, title, message,
               related_activity_id=None, priority=NotificationPriority.NORMAL, link=None):
        notification = NotificationDispatcher.record(
            recipient_id, sender_id, type, title, message,
            related_activity_id=related_activity_id, priority=priority, link=link,
        )
        db.session.commit()
        NotificationDispatcher.deliver([notification])
        return notification

    @staticmethod
    def list_for(recipient_id, unread_only=False, limit=50):
        query = Notification.query.filter_by(recipient_id=recipient_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    @staticmethod
    def unread_count(recipient_id):
        return Notification.query.filter_by(recipient_id=recipient_id, is_read=False).count()

    @staticmethod
    def mark_read(notification_id, actor_id):
        notification = db.session.get(Notification, notification_id)
        if not notification:
            raise NotFound("Notification", notification_id)
        if notification.recipient_id != actor_id:
            raise PermissionDenied("Not authorized to update this notification")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            db.session.commit()
        return notification

    @staticmethod
    def mark_all_read(recipient_id):
        result = db.session.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.utcnow())
        )
        db.session.commit()
        return result.rowcount

    @staticmethod
    def purge_expired(now=None):
        """Deletes notifications past the retention window. Returns the number removed."""
        now = now or datetime.utcnow()
        retention_days = current_app.config.get('NOTIFICATION_RETENTION_DAYS', 30)
        cutoff = now - timedelta(days=retention_days)

        removed = Notification.query.filter(Notification.created_at < cutoff).delete(synchronize_session=False)
        db.session.commit()
        logger.info("Purged %s notifications older than %s", removed, cutoff.isoformat())
        return removed
