"""Tests for admin packing and cancellation, including stock restoration."""

import pytest
from protean import current_domain

from marketplace.exceptions import IllegalTransition
from marketplace.inventory.product import Product
from marketplace.notifications.notification import Notification
from marketplace.ordering.order.lifecycle import CancelOrder, MarkOrderPacked
from marketplace.ordering.order.order import Order, OrderStatus


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _notification_types(user_id):
    items = current_domain.repository_for(Notification)._dao.query.filter(user_id=user_id).all().items
    return sorted(n.payload.get("template") for n in items)


class TestPack:
    def test_pack_paid_order(self, paid_order):
        order_id, _ = paid_order()
        status = current_domain.process(MarkOrderPacked(order_id=order_id), asynchronous=False)
        assert status == OrderStatus.PACKED.value
        assert _order(order_id).packed_at is not None
        assert "order_packed" in _notification_types("buyer-1")

    def test_pack_unpaid_order_is_illegal(self, place_order):
        order_id, _ = place_order()
        with pytest.raises(IllegalTransition):
            current_domain.process(MarkOrderPacked(order_id=order_id), asynchronous=False)
        assert _order(order_id).status == OrderStatus.NEW.value


class TestCancel:
    def test_cancel_restores_stock(self, place_order):
        order_id, product_id = place_order(quantity=2.5, stock_qty=10)
        assert current_domain.repository_for(Product).get(product_id).stock_qty == 7.5

        current_domain.process(CancelOrder(order_id=order_id, reason="Out of area"), asynchronous=False)

        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Out of area"
        assert order.cancelled_by == "admin"
        assert current_domain.repository_for(Product).get(product_id).stock_qty == 10
        assert "order_cancelled" in _notification_types("buyer-1")

    def test_cancel_twice_restores_once(self, place_order):
        order_id, product_id = place_order(quantity=2, stock_qty=5)
        current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)
        with pytest.raises(IllegalTransition):
            current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)
        assert current_domain.repository_for(Product).get(product_id).stock_qty == 5

    def test_shipped_order_cannot_be_cancelled(self, paid_order, fake_carrier):
        from marketplace.fulfillment.shipment import create_shipment

        order_id, _ = paid_order()
        create_shipment(order_id)
        with pytest.raises(IllegalTransition):
            current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)
        assert _order(order_id).status == OrderStatus.SHIPPED.value
