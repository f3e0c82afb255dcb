"""Shared helpers for writing notifications from order lifecycle handlers.

Called inside the caller's unit of work: the notification commits with the
transition that produced it.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.notifications.notification import Notification
from marketplace.notifications.templates import get_template

logger = structlog.get_logger(__name__)

# Which template announces entry into each order status
STATUS_TEMPLATES = {
    "paid": "payment_confirmed",
    "packed": "order_packed",
    "shipped": "order_shipped",
    "completed": "order_completed",
    "cancelled": "order_cancelled",
}


def create_notification(user_id, notification_type, title, message, data=None) -> str:
    """Persist one notification and return its id."""
    notification = Notification.create(
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        data=data,
    )
    current_domain.repository_for(Notification).add(notification)
    logger.info(
        "Notification created",
        user_id=str(user_id),
        notification_type=notification_type,
        notification_id=str(notification.id),
    )
    return str(notification.id)


def notify_from_template(user_id, template_key: str, context: dict) -> str:
    template_cls = get_template(template_key)
    rendered = template_cls.render(context)
    return create_notification(
        user_id=user_id,
        notification_type=template_cls.notification_type,
        title=rendered["title"],
        message=rendered["message"],
        data={**context, "template": template_key},
    )


def order_context(order, **extra) -> dict:
    context = {
        "order_id": str(order.id),
        "status": order.status,
        "total_idr": order.total_idr,
        "courier_company": order.courier_company,
        "tracking_number": order.tracking_number,
    }
    context.update({k: v for k, v in extra.items() if v is not None})
    return context


def notify_order_status(order, **extra) -> str | None:
    """Announce the order's current status to its buyer, if that status has a template."""
    template_key = STATUS_TEMPLATES.get(order.status)
    if template_key is None:
        return None
    return notify_from_template(order.buyer_id, template_key, order_context(order, **extra))
