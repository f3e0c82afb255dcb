"""Product aggregate (CQRS) — the Stock Ledger.

Holds the authoritative sellable quantity for each product, in kilograms.
Quantities are fractional (coffee grounds are sold by weight) and rounded to
gram precision so repeated decrements and restores do not drift.

The Order Factory decrements stock inside the same unit of work that creates
the order; a cancelled order gives its quantities back.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from marketplace.domain import marketplace
from marketplace.exceptions import OutOfStock
from marketplace.inventory.events import (
    ProductRegistered,
    StockAdjusted,
    StockDecremented,
    StockRestored,
)

# Gram precision for kilogram quantities
_QTY_PRECISION = 3


def normalize_qty(value) -> float:
    return round(float(value), _QTY_PRECISION)


@marketplace.aggregate
class Product:
    title = String(required=True, max_length=255)
    price_idr = Integer(required=True, min_value=0)
    stock_qty = Float(default=0.0, min_value=0.0)
    unit = String(max_length=20, default="kg")
    coffee_type = String(max_length=50)
    grind_level = String(max_length=50)
    condition = String(max_length=50)
    published = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(
        cls,
        title,
        price_idr,
        stock_qty,
        unit="kg",
        coffee_type=None,
        grind_level=None,
        condition=None,
        published=True,
        product_id=None,
    ):
        now = datetime.now(UTC)
        if stock_qty < 0:
            raise ValidationError({"stock_qty": ["Stock cannot be negative"]})

        attrs = dict(
            title=title,
            price_idr=price_idr,
            stock_qty=normalize_qty(stock_qty),
            unit=unit or "kg",
            coffee_type=coffee_type,
            grind_level=grind_level,
            condition=condition,
            published=published,
            created_at=now,
            updated_at=now,
        )
        if product_id:
            attrs["id"] = product_id
        product = cls(**attrs)

        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                title=title,
                price_idr=price_idr,
                stock_qty=product.stock_qty,
                registered_at=now,
            )
        )
        return product

    def can_supply(self, quantity) -> bool:
        return normalize_qty(quantity) <= normalize_qty(self.stock_qty)

    def decrement_stock(self, quantity, order_id):
        """Take stock for an order. Refuses to go below zero."""
        quantity = normalize_qty(quantity)
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than zero"]})
        if not self.can_supply(quantity):
            raise OutOfStock(str(self.id), quantity, self.stock_qty)

        self.stock_qty = normalize_qty(self.stock_qty - quantity)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                remaining=self.stock_qty,
            )
        )

    def restore_stock(self, quantity, order_id):
        """Give stock back from a cancelled order."""
        quantity = normalize_qty(quantity)
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than zero"]})

        self.stock_qty = normalize_qty(self.stock_qty + quantity)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                remaining=self.stock_qty,
            )
        )

    def adjust_stock(self, new_qty, reason=None):
        new_qty = normalize_qty(new_qty)
        if new_qty < 0:
            raise ValidationError({"stock_qty": ["Stock cannot be negative"]})

        previous = self.stock_qty
        self.stock_qty = new_qty
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                previous_qty=previous,
                new_qty=new_qty,
                reason=reason,
            )
        )
