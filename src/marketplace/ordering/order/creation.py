"""Order creation (the Order Factory) — command and handler.

Turns a buyer's cart into an order in one unit of work. Every line is
checked before anything is written; if any line fails, the handler raises
and the unit of work persists nothing (no order, no stock decrement).
Concurrent checkouts for the same product meet at the Product aggregate's
version check in the datastore, not at a lock here.

Clearing the cart is *not* part of this unit of work; see
``marketplace.ordering.checkout``.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import CheckoutRejected
from marketplace.inventory.product import Product
from marketplace.notifications.helpers import notify_from_template, order_context
from marketplace.ordering.cart.cart import load_cart
from marketplace.ordering.cart.validation import CartViolation, ViolationReason, check_line, find_product
from marketplace.ordering.order.order import Order

logger = structlog.get_logger(__name__)

_REQUIRED_ADDRESS_FIELDS = ("recipient_name", "phone", "address", "city", "postal_code")


@marketplace.command(part_of="Order")
class PlaceOrder:
    """Convert the buyer's current cart into an order."""

    buyer_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: ShippingAddress fields
    shipping_fee_idr = Integer(default=0, min_value=0)
    courier_company = String(max_length=50)
    courier_service = String(max_length=50)
    notes = Text()


def address_problems(address: dict) -> dict:
    """Field → messages for an unusable shipping address. Empty means usable."""
    problems = {}
    for field in _REQUIRED_ADDRESS_FIELDS:
        if not str(address.get(field) or "").strip():
            problems[field] = ["This field is required"]
    if "address" not in problems and len(address["address"].strip()) < 10:
        problems["address"] = ["Address must be at least 10 characters"]
    if "postal_code" not in problems and len(str(address["postal_code"]).strip()) < 5:
        problems["postal_code"] = ["Postal code must be at least 5 characters"]
    if address.get("email") and "@" not in address["email"]:
        problems["email"] = ["Invalid email address"]
    return problems


def _snapshot(product, quantity) -> dict:
    return {
        "product_id": str(product.id),
        "product_title": product.title,
        "price_idr": product.price_idr,
        "quantity": quantity,
        "unit": product.unit or "kg",
        "coffee_type": product.coffee_type,
        "grind_level": product.grind_level,
        "condition": product.condition,
    }


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        address = json.loads(command.shipping_address) if command.shipping_address else {}
        problems = address_problems(address)
        if problems:
            raise ValidationError({f"shipping_address.{k}": v for k, v in problems.items()})

        cart = load_cart(command.buyer_id)
        if cart is None or cart.is_empty:
            raise CheckoutRejected(
                [CartViolation(None, None, 0.0, 0.0, ViolationReason.EMPTY_CART.value)],
                messages={"cart": ["Cart is empty"]},
            )

        # Check every line before touching anything
        lines = []
        violations = []
        for entry in cart.entries:
            product = find_product(entry.product_id)
            violation = check_line(entry.product_id, entry.quantity, product)
            if violation is not None:
                violations.append(violation)
            else:
                lines.append((product, entry.quantity))

        if violations:
            logger.info(
                "Checkout rejected",
                buyer_id=str(command.buyer_id),
                violations=[v.product_id for v in violations],
            )
            raise CheckoutRejected(violations)

        order = Order.create(
            buyer_id=command.buyer_id,
            items_data=[_snapshot(product, quantity) for product, quantity in lines],
            shipping_address=address,
            shipping_fee_idr=command.shipping_fee_idr or 0,
            courier_company=command.courier_company,
            courier_service=command.courier_service,
            notes=command.notes,
        )

        product_repo = current_domain.repository_for(Product)
        for product, quantity in lines:
            product.decrement_stock(quantity, order_id=order.id)
            product_repo.add(product)

        current_domain.repository_for(Order).add(order)
        notify_from_template(order.buyer_id, "order_created", order_context(order))

        logger.info(
            "Order created",
            order_id=str(order.id),
            buyer_id=str(order.buyer_id),
            total_idr=order.total_idr,
            items=len(lines),
        )
        return str(order.id)
