from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain

from marketplace.exceptions import GatewayError, PaymentNotAllowed
from marketplace.ordering.order.order import Order, OrderStatus
from marketplace.payments.session import open_payment_session


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestOpenPaymentSession:
    def test_moves_new_order_to_pending_payment(self, place_order, fake_gateway):
        order_id, _ = place_order(quantity=2.5, price_idr=20000, shipping_fee_idr=15000)

        view = open_payment_session(order_id)

        assert view.reused is False
        assert view.token.startswith("fake-snap-")
        order = _order(order_id)
        assert order.status == OrderStatus.PENDING_PAYMENT.value
        assert order.payment_reference == view.payment_reference
        assert order.payment_token == view.token
        assert order.payment_status == "pending"

    def test_gateway_receives_matching_amount(self, place_order, fake_gateway):
        order_id, _ = place_order(quantity=2.5, price_idr=20000, shipping_fee_idr=15000)
        open_payment_session(order_id)

        call = fake_gateway.calls[0]
        assert call["gross_amount"] == 65000
        assert sum(d["price"] * d["quantity"] for d in call["item_details"]) == 65000
        assert call["custom_fields"]["custom_field2"] == order_id
        assert call["expiry_hours"] == 24

    def test_active_session_is_reused(self, place_order, fake_gateway):
        order_id, _ = place_order()
        first = open_payment_session(order_id)
        second = open_payment_session(order_id)

        assert second.reused is True
        assert second.token == first.token
        assert second.payment_reference == first.payment_reference
        assert len(fake_gateway.calls) == 1

    def test_expired_session_gets_new_reference(self, place_order, fake_gateway):
        order_id, _ = place_order()
        first = open_payment_session(order_id)

        order = _order(order_id)
        order.payment_expires_at = datetime.now(UTC) - timedelta(minutes=1)
        current_domain.repository_for(Order).add(order)

        second = open_payment_session(order_id)
        assert second.reused is False
        assert second.payment_reference != first.payment_reference
        assert _order(order_id).status == OrderStatus.PENDING_PAYMENT.value

    def test_gateway_failure_leaves_order_untouched(self, place_order, fake_gateway):
        order_id, _ = place_order()
        fake_gateway.configure(should_succeed=False)

        with pytest.raises(GatewayError) as exc:
            open_payment_session(order_id)

        assert exc.value.retryable is True
        order = _order(order_id)
        assert order.status == OrderStatus.NEW.value
        assert order.payment_reference is None

    def test_retry_after_failure_succeeds(self, place_order, fake_gateway):
        order_id, _ = place_order()
        fake_gateway.configure(should_succeed=False)
        with pytest.raises(GatewayError):
            open_payment_session(order_id)

        fake_gateway.configure(should_succeed=True)
        view = open_payment_session(order_id)
        assert _order(order_id).payment_reference == view.payment_reference

    def test_paid_order_cannot_open_session(self, paid_order):
        order_id, _ = paid_order()
        with pytest.raises(PaymentNotAllowed):
            open_payment_session(order_id)

    def test_cancelled_order_cannot_open_session(self, place_order, fake_gateway):
        from marketplace.ordering.order.lifecycle import CancelOrder

        order_id, _ = place_order()
        current_domain.process(CancelOrder(order_id=order_id, reason="changed mind"), asynchronous=False)

        with pytest.raises(PaymentNotAllowed):
            open_payment_session(order_id)
        assert fake_gateway.calls == []
