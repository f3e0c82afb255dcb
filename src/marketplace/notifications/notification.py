"""Notification aggregate (CQRS) — the per-user message log.

Notifications are written by the order lifecycle handlers in the same unit of
work as the transition they describe, so a transition and its message commit
or roll back together. Apart from flipping ``read`` a notification never
changes; it disappears on explicit deletion or retention purge.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from marketplace.domain import marketplace
from marketplace.notifications.events import NotificationCreated, NotificationRead


class NotificationType(Enum):
    ORDER_UPDATE = "order_update"
    PAYMENT_CONFIRMED = "payment_confirmed"
    SHIPMENT_READY = "shipment_ready"
    ADMIN_ALERT = "admin_alert"
    SYSTEM_MESSAGE = "system_message"


NOTIFICATION_ICONS = {
    NotificationType.ORDER_UPDATE.value: "📦",
    NotificationType.PAYMENT_CONFIRMED.value: "💳",
    NotificationType.SHIPMENT_READY.value: "🚚",
    NotificationType.ADMIN_ALERT.value: "⚠️",
    NotificationType.SYSTEM_MESSAGE.value: "ℹ️",
}


@marketplace.aggregate
class Notification:
    """A single message in a user's notification log."""

    user_id: Identifier(required=True)
    notification_type: String(choices=NotificationType, required=True)
    title: String(required=True, max_length=255)
    message: Text(required=True)
    data: Text()  # JSON payload, e.g. {"order_id": ...}
    read: Boolean(default=False)
    read_at: DateTime()
    created_at: DateTime()

    @classmethod
    def create(cls, user_id, notification_type, title, message, data=None):
        now = datetime.now(UTC)
        notification = cls(
            user_id=str(user_id),
            notification_type=NotificationType(notification_type).value,
            title=title,
            message=message,
            data=json.dumps(data or {}),
            read=False,
            created_at=now,
        )
        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                user_id=str(user_id),
                notification_type=notification.notification_type,
                title=title,
                created_at=now,
            )
        )
        return notification

    @property
    def payload(self) -> dict:
        return json.loads(self.data) if self.data else {}

    @property
    def icon(self) -> str:
        return NOTIFICATION_ICONS.get(self.notification_type, "🔔")

    def mark_read(self) -> bool:
        """Flip to read. Reading an already-read notification is fine and changes nothing."""
        if self.read:
            return False

        now = datetime.now(UTC)
        self.read = True
        self.read_at = now
        self.raise_(
            NotificationRead(
                notification_id=str(self.id),
                user_id=str(self.user_id),
                read_at=now,
            )
        )
        return True

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "data": self.payload,
            "read": bool(self.read),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "icon": self.icon,
        }
