"""Cart validation against the current Stock Ledger.

Stock may have moved since a line was added, so every line is re-checked.
Problems are returned as data, not raised, so the caller can show the buyer
an itemised diff.
"""

from dataclasses import asdict, dataclass
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.inventory.product import Product, normalize_qty
from marketplace.ordering.cart.cart import load_cart


class ViolationReason(Enum):
    UNAVAILABLE = "unavailable"
    UNPUBLISHED = "unpublished"
    INSUFFICIENT_STOCK = "insufficient_stock"
    EMPTY_CART = "empty_cart"


@dataclass(frozen=True)
class CartViolation:
    product_id: str | None
    title: str | None
    requested: float
    available: float
    reason: str

    def describe(self) -> str:
        if self.reason == ViolationReason.UNAVAILABLE.value:
            return "Product no longer available"
        if self.reason == ViolationReason.UNPUBLISHED.value:
            return "Product is no longer published"
        if self.reason == ViolationReason.EMPTY_CART.value:
            return "Cart is empty"
        return f"Insufficient stock. Available: {self.available:g}, In cart: {self.requested:g}"

    def to_dict(self) -> dict:
        return {**asdict(self), "message": self.describe()}


def check_line(product_id, requested, product) -> CartViolation | None:
    """Check one cart line. ``product`` is ``None`` when it no longer exists."""
    requested = normalize_qty(requested)
    if product is None:
        return CartViolation(
            product_id=str(product_id),
            title=None,
            requested=requested,
            available=0.0,
            reason=ViolationReason.UNAVAILABLE.value,
        )
    if not product.published:
        return CartViolation(
            product_id=str(product_id),
            title=product.title,
            requested=requested,
            available=normalize_qty(product.stock_qty),
            reason=ViolationReason.UNPUBLISHED.value,
        )
    if not product.can_supply(requested):
        return CartViolation(
            product_id=str(product_id),
            title=product.title,
            requested=requested,
            available=normalize_qty(product.stock_qty),
            reason=ViolationReason.INSUFFICIENT_STOCK.value,
        )
    return None


def find_product(product_id):
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        return None


def validate_cart(buyer_id) -> list[CartViolation]:
    """Re-check every line of the buyer's cart. Empty list means checkout can proceed."""
    cart = load_cart(buyer_id)
    if cart is None:
        return []

    violations = []
    for entry in cart.entries:
        violation = check_line(entry.product_id, entry.quantity, find_product(entry.product_id))
        if violation is not None:
            violations.append(violation)
    return violations
