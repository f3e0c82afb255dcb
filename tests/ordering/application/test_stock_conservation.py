"""Stock taken by orders always equals what live orders hold, whatever gets cancelled."""

from protean import current_domain

from marketplace.inventory.product import Product, normalize_qty
from marketplace.ordering.checkout import checkout
from marketplace.ordering.order.lifecycle import CancelOrder
from marketplace.ordering.order.order import Order, OrderStatus
from marketplace.payments.session import open_payment_session
from marketplace.reconciliation.reconciler import reconcile


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock_qty


def _held_by_live_orders(product_id):
    total = 0.0
    for order in current_domain.repository_for(Order)._dao.query.all().items:
        if order.status == OrderStatus.CANCELLED.value:
            continue
        total += sum(item.quantity for item in order.items if str(item.product_id) == str(product_id))
    return normalize_qty(total)


def test_taken_stock_matches_live_order_items(make_product, fill_cart, address, fake_gateway):
    initial = {"arabica": 20.0, "robusta": 12.5}
    arabica = make_product(title="Arabica grounds", stock_qty=initial["arabica"])
    robusta = make_product(title="Robusta grounds", stock_qty=initial["robusta"])
    carts = {
        "buyer-1": [(arabica, 2.5), (robusta, 1.25)],
        "buyer-2": [(arabica, 4.0)],
        "buyer-3": [(arabica, 0.75), (robusta, 3.5)],
        "buyer-4": [(robusta, 2.0)],
    }

    orders = {}
    for buyer_id, lines in carts.items():
        fill_cart(buyer_id, *lines)
        orders[buyer_id] = checkout(buyer_id=buyer_id, shipping_address=address, shipping_fee_idr=15000).order_id

    # One cancelled by an admin, one expired at the gateway, one paid
    current_domain.process(CancelOrder(order_id=orders["buyer-2"], reason="Duplicate"), asynchronous=False)
    expired = open_payment_session(orders["buyer-3"]).payment_reference
    reconcile("midtrans", fake_gateway.set_transaction_status(expired, "expire"))
    paid = open_payment_session(orders["buyer-1"]).payment_reference
    reconcile("midtrans", fake_gateway.set_transaction_status(paid, "settlement"))

    assert current_domain.repository_for(Order).get(orders["buyer-3"]).status == OrderStatus.CANCELLED.value
    for name, product_id in (("arabica", arabica), ("robusta", robusta)):
        taken = normalize_qty(initial[name] - _stock(product_id))
        assert taken == _held_by_live_orders(product_id)

    assert _stock(arabica) == 17.5
    assert _stock(robusta) == 9.25
