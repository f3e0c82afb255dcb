"""Checkout flow — place the order, then clear the cart.

The order is the source of truth once ``PlaceOrder`` commits. Clearing the
cart runs as its own command afterwards; if it fails the order stands and the
failure is logged for follow-up.
"""

import json
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from marketplace.ordering.cart.management import ClearCart
from marketplace.ordering.order.creation import PlaceOrder
from marketplace.ordering.order.order import Order

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    total_idr: int
    status: str
    items_count: int
    cart_cleared: bool

    @property
    def payment_url(self) -> str:
        return f"/checkout/payment?order_id={self.order_id}"


def checkout(
    buyer_id,
    shipping_address: dict,
    shipping_fee_idr: int = 0,
    courier_company=None,
    courier_service=None,
    notes=None,
) -> CheckoutResult:
    """Run the Order Factory for ``buyer_id``. Raises ``CheckoutRejected`` with itemised violations."""
    order_id = current_domain.process(
        PlaceOrder(
            buyer_id=buyer_id,
            shipping_address=json.dumps(shipping_address),
            shipping_fee_idr=shipping_fee_idr,
            courier_company=courier_company,
            courier_service=courier_service,
            notes=notes,
        ),
        asynchronous=False,
    )

    cart_cleared = True
    try:
        current_domain.process(ClearCart(buyer_id=buyer_id), asynchronous=False)
    except Exception:
        cart_cleared = False
        logger.error("Failed to clear cart after checkout", buyer_id=str(buyer_id), order_id=order_id, exc_info=True)

    order = current_domain.repository_for(Order).get(order_id)
    return CheckoutResult(
        order_id=order_id,
        total_idr=order.total_idr,
        status=order.status,
        items_count=len(order.items),
        cart_cleared=cart_cleared,
    )
