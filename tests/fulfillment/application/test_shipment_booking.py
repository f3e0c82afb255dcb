import pytest
from protean import current_domain

from marketplace.exceptions import AlreadyShipped, GatewayError, PreconditionFailed
from marketplace.fulfillment.rates import quote_rates
from marketplace.fulfillment.shipment import create_shipment, get_tracking
from marketplace.notifications.notification import Notification
from marketplace.ordering.order.order import Order, OrderStatus, ShippingStatus
from marketplace.reconciliation.translators import SHIPMENT_REFERENCE_PATTERN


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestCreateShipment:
    def test_paid_order_is_shipped_through_packed(self, paid_order, fake_carrier):
        order_id, _ = paid_order()

        order = create_shipment(order_id)

        assert order.status == OrderStatus.SHIPPED.value
        assert order.packed_at is not None
        assert order.shipped_at is not None
        assert order.shipment_id.startswith("fake-ship-")
        assert order.tracking_number.startswith("FAKE")
        assert order.shipping_status == ShippingStatus.SHIPPED.value

    def test_packed_order_is_shipped(self, paid_order, fake_carrier):
        from marketplace.ordering.order.lifecycle import MarkOrderPacked

        order_id, _ = paid_order()
        current_domain.process(MarkOrderPacked(order_id=order_id), asynchronous=False)

        assert create_shipment(order_id).status == OrderStatus.SHIPPED.value

    def test_request_carries_order(self, paid_order, fake_carrier):
        order_id, _ = paid_order(quantity=2.5)
        create_shipment(order_id)

        request = fake_carrier.calls[-1]["request"]
        assert request["metadata"]["order_id"] == order_id
        assert SHIPMENT_REFERENCE_PATTERN.match(request["reference_id"]).group(1) == order_id
        assert request["courier_company"] == "jne"
        assert request["courier_type"] == "reg"
        assert request["destination_area_id"] == "IDNP1IDNC1IDND1IDZ23122"
        assert request["items"][0]["weight"] == 2500

    def test_buyer_is_notified(self, paid_order, fake_carrier):
        order_id, _ = paid_order()
        create_shipment(order_id)

        templates = [
            n.payload.get("template")
            for n in current_domain.repository_for(Notification)._dao.query.all().items
            if n.payload.get("order_id") == order_id
        ]
        assert "order_shipped" in templates

    def test_second_shipment_is_conflict(self, paid_order, fake_carrier):
        order_id, _ = paid_order()
        create_shipment(order_id)

        with pytest.raises(AlreadyShipped):
            create_shipment(order_id)
        assert len([c for c in fake_carrier.calls if c["method"] == "create_shipment"]) == 1

    def test_unpaid_order(self, place_order, fake_carrier):
        order_id, _ = place_order()
        with pytest.raises(PreconditionFailed):
            create_shipment(order_id)
        assert fake_carrier.calls == []

    def test_missing_area(self, paid_order, fake_carrier, address):
        address["area_id"] = None
        order_id, _ = paid_order()

        with pytest.raises(PreconditionFailed, match="destination area"):
            create_shipment(order_id)

    def test_missing_courier(self, paid_order, fake_carrier):
        order_id, _ = paid_order()
        order = _order(order_id)
        order.courier_company = None
        current_domain.repository_for(Order).add(order)

        with pytest.raises(PreconditionFailed, match="courier"):
            create_shipment(order_id)

    def test_carrier_failure_leaves_order_paid(self, paid_order, fake_carrier):
        order_id, _ = paid_order()
        fake_carrier.configure(should_succeed=False)

        with pytest.raises(GatewayError):
            create_shipment(order_id)

        order = _order(order_id)
        assert order.status == OrderStatus.PAID.value
        assert order.shipment_id is None


class TestAlreadyShippedGuard:
    def test_shipment_recorded_twice_on_aggregate(self, paid_order):
        order = _order(paid_order()[0])
        order.record_shipment("ship-1", "SIKUPI-SHIP-1-001-x")

        with pytest.raises(AlreadyShipped):
            order.record_shipment("ship-2", "SIKUPI-SHIP-2-001-x")


class TestTracking:
    def test_tracking(self, paid_order, fake_carrier):
        order_id, _ = paid_order()
        order = create_shipment(order_id)

        tracking = get_tracking(order)

        assert tracking["shipment_id"] == order.shipment_id
        assert tracking["tracking_number"] == order.tracking_number
        assert tracking["carrier_status"] == "confirmed"
        assert tracking["courier_company"] == "jne"

    def test_not_shipped(self, paid_order, fake_carrier):
        with pytest.raises(PreconditionFailed):
            get_tracking(_order(paid_order()[0]))


class TestQuoteRates:
    def test_sorted_by_price(self, fake_carrier):
        lines = [{"product_id": "p-1", "title": "Arabica", "price_idr": 20000, "quantity": 2.5}]
        quotes = quote_rates({"postal_code": "23122"}, lines)

        prices = [q.price for q in quotes]
        assert prices == sorted(prices)
        assert quotes[0].courier_company == "anteraja"
        assert quotes[0].price == 9500 * 3

    def test_courier_filter(self, fake_carrier):
        lines = [{"product_id": "p-1", "title": "Arabica", "price_idr": 20000, "quantity": 1}]
        quotes = quote_rates({"postal_code": "23122"}, lines, couriers="jne")
        assert {q.courier_company for q in quotes} == {"jne"}

    def test_carrier_failure(self, fake_carrier):
        fake_carrier.configure(should_succeed=False)
        with pytest.raises(GatewayError):
            quote_rates({"postal_code": "23122"}, [{"product_id": "p", "title": "t", "price_idr": 1, "quantity": 1}])
