"""Payment status polling — the fallback when a notification is late or lost.

The gateway's answer is reconciled through the same path as a webhook, with
the same delivery key, so a poll and a webhook reporting the same status
apply it once between them.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.exceptions import PreconditionFailed
from marketplace.ordering.order.order import Order
from marketplace.payments.gateway import get_gateway
from marketplace.reconciliation.reconciler import reconcile

logger = structlog.get_logger(__name__)


def sync_payment_status(order_id) -> dict:
    """Ask the gateway for the order's current payment status and apply it."""
    order = current_domain.repository_for(Order).get(order_id)
    if not order.payment_reference:
        raise PreconditionFailed("Order has no payment session")

    status = get_gateway().get_status(order.payment_reference)
    # Polled answers come from our own authenticated call
    result = reconcile("midtrans", dict(status.raw, custom_field2=str(order.id)), verify=False)

    order = current_domain.repository_for(Order).get(order_id)
    logger.info(
        "Payment status synced",
        order_id=str(order.id),
        transaction_status=status.transaction_status,
        outcome=result.outcome.value,
    )
    return {
        "order_id": str(order.id),
        "status": order.status,
        "payment_status": order.payment_status,
        "transaction_status": status.transaction_status,
        "outcome": result.outcome.value,
    }
