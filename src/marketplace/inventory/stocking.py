"""Stock Ledger maintenance — commands and handler.

Registers sellable products and lets an admin correct stock counts. Catalog
editing proper lives elsewhere; this is only what the order engine needs.
"""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.inventory.product import Product


@marketplace.command(part_of="Product")
class RegisterProduct:
    """Make a product sellable with an opening stock quantity."""

    product_id = Identifier()  # Optional: reuse the catalog's id
    title = String(required=True, max_length=255)
    price_idr = Integer(required=True, min_value=0)
    stock_qty = Float(required=True, min_value=0.0)
    unit = String(max_length=20, default="kg")
    coffee_type = String(max_length=50)
    grind_level = String(max_length=50)
    condition = String(max_length=50)
    published = Boolean(default=True)


@marketplace.command(part_of="Product")
class AdjustStock:
    """Overwrite the stock count after a physical recount."""

    product_id = Identifier(required=True)
    new_qty = Float(required=True, min_value=0.0)
    reason = String(max_length=255)


@marketplace.command_handler(part_of=Product)
class StockLedgerHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            title=command.title,
            price_idr=command.price_idr,
            stock_qty=command.stock_qty,
            unit=command.unit,
            coffee_type=command.coffee_type,
            grind_level=command.grind_level,
            condition=command.condition,
            published=command.published if command.published is not None else True,
            product_id=command.product_id,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.adjust_stock(command.new_qty, reason=command.reason)
        repo.add(product)
