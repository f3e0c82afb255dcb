"""Domain events for the Order aggregate.

Every status change raises one event. They are the audit trail of the order
lifecycle; notifications are written directly by the handlers that cause the
change, not derived from these events.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderCreated:
    """A cart was converted into an order at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item snapshots
    subtotal_idr = Integer(required=True)
    shipping_fee_idr = Integer(required=True)
    total_idr = Integer(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class PaymentSessionCreated:
    """A gateway payment session was opened (or reopened after expiry)."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String(required=True)
    expires_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    total_idr = Integer(required=True)
    paid_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPacked:
    __version__ = 1

    order_id = Identifier(required=True)
    packed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class ShipmentBooked:
    """The shipping aggregator accepted the shipment."""

    __version__ = 1

    order_id = Identifier(required=True)
    shipment_id = String(required=True)
    tracking_number = String()
    courier_company = String()


@marketplace.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String()
    shipped_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCompleted:
    """The carrier reported delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    cancelled_at = DateTime(required=True)
