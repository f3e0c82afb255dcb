"""Notification management — commands and handler.

Users can only touch their own notifications; someone else's notification is
reported as not found.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.notifications.notification import Notification

logger = structlog.get_logger(__name__)

DEFAULT_RETENTION_DAYS = 30


@marketplace.command(part_of="Notification")
class MarkNotificationRead:
    notification_id = Identifier(required=True)
    user_id = Identifier(required=True)


@marketplace.command(part_of="Notification")
class MarkAllNotificationsRead:
    user_id = Identifier(required=True)


@marketplace.command(part_of="Notification")
class DeleteNotification:
    notification_id = Identifier(required=True)
    user_id = Identifier(required=True)


@marketplace.command(part_of="Notification")
class PurgeOldNotifications:
    """Drop notifications older than the retention window."""

    older_than_days = Integer(default=DEFAULT_RETENTION_DAYS, min_value=1)
    read_only = Boolean(default=True)


def _owned(repo, notification_id, user_id):
    notification = repo.get(notification_id)
    if str(notification.user_id) != str(user_id):
        raise ObjectNotFoundError(f"Notification {notification_id} not found")
    return notification


@marketplace.command_handler(part_of=Notification)
class ManageNotificationsHandler:
    @handle(MarkNotificationRead)
    def mark_read(self, command):
        repo = current_domain.repository_for(Notification)
        notification = _owned(repo, command.notification_id, command.user_id)
        if notification.mark_read():
            repo.add(notification)
        return notification.to_dict()

    @handle(MarkAllNotificationsRead)
    def mark_all_read(self, command):
        repo = current_domain.repository_for(Notification)
        unread = repo._dao.query.filter(user_id=str(command.user_id), read=False).all().items
        for notification in unread:
            notification.mark_read()
            repo.add(notification)
        return len(unread)

    @handle(DeleteNotification)
    def delete(self, command):
        repo = current_domain.repository_for(Notification)
        notification = _owned(repo, command.notification_id, command.user_id)
        repo._dao.delete(notification)

    @handle(PurgeOldNotifications)
    def purge(self, command):
        days = command.older_than_days or DEFAULT_RETENTION_DAYS
        cutoff = datetime.now(UTC) - timedelta(days=days)
        repo = current_domain.repository_for(Notification)

        filters = {"created_at__lt": cutoff}
        if command.read_only is not False:
            filters["read"] = True
        expired = repo._dao.query.filter(**filters).all().items
        for notification in expired:
            repo._dao.delete(notification)

        logger.info("Purged old notifications", count=len(expired), older_than_days=days)
        return len(expired)
