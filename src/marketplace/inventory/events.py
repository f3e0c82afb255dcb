"""Domain events for the Product (Stock Ledger) aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductRegistered:
    """A product became sellable with an opening stock quantity."""

    __version__ = 1

    product_id = Identifier(required=True)
    title = String(required=True)
    price_idr = Integer(required=True)
    stock_qty = Float(required=True)
    registered_at = DateTime(required=True)


@marketplace.event(part_of="Product")
class StockDecremented:
    """Stock was taken by an order at checkout."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Float(required=True)
    remaining = Float(required=True)


@marketplace.event(part_of="Product")
class StockRestored:
    """Stock was given back by a cancelled order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Float(required=True)
    remaining = Float(required=True)


@marketplace.event(part_of="Product")
class StockAdjusted:
    """An admin corrected the stock count."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_qty = Float(required=True)
    new_qty = Float(required=True)
    reason = String(max_length=255)
