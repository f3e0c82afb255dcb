"""Template registry — maps template keys to notification content.

Each template knows its notification type and how to render a title and
message from order context data.
"""

from marketplace.notifications.notification import NotificationType


def format_idr(amount) -> str:
    """Rupiah with dot thousands separators: 150000 -> "Rp 150.000"."""
    return "Rp " + f"{int(amount or 0):,}".replace(",", ".")


def _order_ref(context: dict) -> str:
    return str(context.get("order_id", "N/A"))[:8]


class OrderCreatedTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order Created",
            "message": (
                f"Your order #{_order_ref(context)} has been created. "
                f"Total: {format_idr(context.get('total_idr'))}. Please complete your payment."
            ),
        }


class PaymentConfirmedTemplate:
    notification_type = NotificationType.PAYMENT_CONFIRMED.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Payment Confirmed",
            "message": (
                f"Payment of {format_idr(context.get('total_idr'))} for order "
                f"#{_order_ref(context)} was received. We are preparing your order."
            ),
        }


class OrderPackedTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order Packed",
            "message": f"Order #{_order_ref(context)} is packed and waiting for courier pickup.",
        }


class OrderShippedTemplate:
    notification_type = NotificationType.SHIPMENT_READY.value

    @staticmethod
    def render(context: dict) -> dict:
        courier = context.get("courier_company") or "the courier"
        tracking = context.get("tracking_number") or "N/A"
        return {
            "title": "Order Shipped",
            "message": (
                f"Order #{_order_ref(context)} is on its way with {courier.upper()}. Tracking number: {tracking}."
            ),
        }


class OrderCompletedTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Order Delivered",
            "message": f"Order #{_order_ref(context)} has been delivered. Thank you for shopping with us!",
        }


class OrderCancelledTemplate:
    notification_type = NotificationType.ORDER_UPDATE.value

    @staticmethod
    def render(context: dict) -> dict:
        reason = context.get("reason")
        message = f"Order #{_order_ref(context)} has been cancelled."
        if reason:
            message += f" Reason: {reason}."
        return {"title": "Order Cancelled", "message": message}


TEMPLATE_REGISTRY: dict[str, type] = {
    "order_created": OrderCreatedTemplate,
    "payment_confirmed": PaymentConfirmedTemplate,
    "order_packed": OrderPackedTemplate,
    "order_shipped": OrderShippedTemplate,
    "order_completed": OrderCompletedTemplate,
    "order_cancelled": OrderCancelledTemplate,
}


def get_template(key: str):
    """Look up a template class by key."""
    template_cls = TEMPLATE_REGISTRY.get(key)
    if template_cls is None:
        raise ValueError(f"No template registered for key: {key}")
    return template_cls
