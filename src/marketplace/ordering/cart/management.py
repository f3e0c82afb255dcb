"""Cart management — commands and handler.

Adding and updating lines checks the Stock Ledger; removing and clearing are
idempotent and never fail for a missing line or cart.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.ordering.cart.cart import Cart, load_cart
from marketplace.ordering.cart.validation import find_product


@marketplace.command(part_of="Cart")
class AddToCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Float(required=True)


@marketplace.command(part_of="Cart")
class UpdateCartQuantity:
    """Set a line to an exact quantity; zero behaves like removal."""

    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Float(required=True)


@marketplace.command(part_of="Cart")
class RemoveFromCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@marketplace.command(part_of="Cart")
class ClearCart:
    buyer_id = Identifier(required=True)


def _sellable_product(product_id):
    product = find_product(product_id)
    if product is None:
        raise ValidationError({"product_id": ["Product no longer available"]})
    if not product.published:
        raise ValidationError({"product_id": ["Product is no longer published"]})
    return product


@marketplace.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = _sellable_product(command.product_id)
        cart = load_cart(command.buyer_id) or Cart.for_buyer(command.buyer_id)
        cart.add(command.product_id, command.quantity, available=product.stock_qty)
        current_domain.repository_for(Cart).add(cart)
        return cart.quantity_of(command.product_id)

    @handle(UpdateCartQuantity)
    def update_quantity(self, command):
        cart = load_cart(command.buyer_id) or Cart.for_buyer(command.buyer_id)
        if command.quantity and command.quantity > 0:
            available = _sellable_product(command.product_id).stock_qty
        else:
            available = 0.0
        cart.update_quantity(command.product_id, command.quantity, available=available)
        current_domain.repository_for(Cart).add(cart)
        return cart.quantity_of(command.product_id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_cart(command.buyer_id)
        if cart is None:
            return
        cart.remove(command.product_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(command.buyer_id)
        if cart is None:
            return
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
