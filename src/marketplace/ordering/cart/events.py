"""Domain events for the Cart aggregate."""

from protean.fields import Float, Identifier, Integer

from marketplace.domain import marketplace


@marketplace.event(part_of="Cart")
class CartEntrySet:
    """A cart line was created or its quantity changed."""

    __version__ = 1

    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Float(default=0.0)
    quantity = Float(required=True)


@marketplace.event(part_of="Cart")
class CartEntryRemoved:
    __version__ = 1

    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@marketplace.event(part_of="Cart")
class CartCleared:
    """Every line was dropped, usually because the cart became an order."""

    __version__ = 1

    buyer_id = Identifier(required=True)
    entries_removed = Integer(required=True)
