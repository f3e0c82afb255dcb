"""Cart aggregate (CQRS) — per-buyer working state until checkout.

A buyer has at most one cart and the cart's identity *is* the buyer id, so it
can be fetched without a query. Entries are keyed by product. Nothing here is
a record of truth: the whole cart is dropped once an order is created.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import OutOfStock
from marketplace.inventory.product import normalize_qty
from marketplace.ordering.cart.events import CartCleared, CartEntryRemoved, CartEntrySet


@marketplace.entity(part_of="Cart")
class CartEntry:
    product_id = Identifier(required=True)
    quantity = Float(required=True, min_value=0.0)
    added_at = DateTime()
    updated_at = DateTime()


@marketplace.aggregate
class Cart:
    buyer_id = Identifier(required=True)
    entries = HasMany(CartEntry)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def for_buyer(cls, buyer_id):
        now = datetime.now(UTC)
        return cls(id=str(buyer_id), buyer_id=str(buyer_id), created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def entry_for(self, product_id):
        return next((e for e in self.entries if str(e.product_id) == str(product_id)), None)

    def quantity_of(self, product_id) -> float:
        entry = self.entry_for(product_id)
        return normalize_qty(entry.quantity) if entry else 0.0

    @property
    def is_empty(self) -> bool:
        return not self.entries

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add(self, product_id, quantity, available):
        """Add ``quantity`` on top of whatever is already in the cart.

        ``available`` is the Stock Ledger's current quantity; the combined
        cart quantity may not exceed it.
        """
        quantity = normalize_qty(quantity)
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than zero"]})

        existing = self.quantity_of(product_id)
        combined = normalize_qty(existing + quantity)
        if combined > normalize_qty(available):
            raise OutOfStock(str(product_id), combined, available)

        self._set(product_id, combined, previous=existing)

    def update_quantity(self, product_id, quantity, available):
        """Set the line to exactly ``quantity``. Zero removes the line."""
        quantity = normalize_qty(quantity)
        if quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        if quantity == 0:
            self.remove(product_id)
            return
        if quantity > normalize_qty(available):
            raise OutOfStock(str(product_id), quantity, available)

        previous = self.quantity_of(product_id)
        if previous == quantity:
            return
        self._set(product_id, quantity, previous=previous)

    def remove(self, product_id):
        entry = self.entry_for(product_id)
        if entry is None:
            return

        self.remove_entries(entry)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartEntryRemoved(buyer_id=str(self.buyer_id), product_id=str(product_id)))

    def clear(self):
        count = len(self.entries)
        if count == 0:
            return

        for entry in list(self.entries):
            self.remove_entries(entry)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(buyer_id=str(self.buyer_id), entries_removed=count))

    def _set(self, product_id, quantity, previous):
        now = datetime.now(UTC)
        entry = self.entry_for(product_id)
        if entry is None:
            self.add_entries(
                CartEntry(
                    product_id=str(product_id),
                    quantity=quantity,
                    added_at=now,
                    updated_at=now,
                )
            )
        else:
            entry.quantity = quantity
            entry.updated_at = now
        self.updated_at = now

        self.raise_(
            CartEntrySet(
                buyer_id=str(self.buyer_id),
                product_id=str(product_id),
                previous_quantity=previous,
                quantity=quantity,
            )
        )


def load_cart(buyer_id):
    """Return the buyer's cart, or ``None`` when they never added anything."""
    try:
        return current_domain.repository_for(Cart).get(str(buyer_id))
    except ObjectNotFoundError:
        return None
