"""Admin lifecycle actions — packing and cancellation.

Cancellation gives every item's quantity back to the Stock Ledger in the
same unit of work, so stock taken by an order is restored exactly once.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.inventory.product import Product
from marketplace.notifications.helpers import notify_order_status
from marketplace.ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class MarkOrderPacked:
    order_id = Identifier(required=True)


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=50, default="admin")


def restore_order_stock(order):
    """Return each item's quantity to its product. Products deleted since are skipped."""
    repo = current_domain.repository_for(Product)
    for item in order.items:
        try:
            product = repo.get(item.product_id)
        except ObjectNotFoundError:
            logger.warning(
                "Product missing while restoring stock",
                order_id=str(order.id),
                product_id=str(item.product_id),
            )
            continue
        product.restore_stock(item.quantity, order_id=order.id)
        repo.add(product)


def cancel_order(order, reason=None, cancelled_by="system"):
    """Cancel through the state machine, restore stock and tell the buyer.

    The caller persists ``order``.
    """
    order.cancel(reason=reason, cancelled_by=cancelled_by)
    restore_order_stock(order)
    notify_order_status(order, reason=reason)
    logger.info("Order cancelled", order_id=str(order.id), reason=reason, cancelled_by=cancelled_by)


@marketplace.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(MarkOrderPacked)
    def mark_packed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_packed()
        notify_order_status(order)
        repo.add(order)
        return order.status

    @handle(CancelOrder)
    def cancel(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        cancel_order(order, reason=command.reason, cancelled_by=command.cancelled_by or "admin")
        repo.add(order)
        return OrderStatus.CANCELLED.value
