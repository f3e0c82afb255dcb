"""Order aggregate (CQRS) — the core of the marketplace.

The Order is the single writer of its own ``status``. Every other component
(checkout, payment sessions, shipment booking, webhook reconciliation, admin
actions) asks the aggregate to move, and the aggregate checks the move
against a fixed transition table.

State Machine (7 states):
    NEW → PENDING_PAYMENT → PAID → PACKED → SHIPPED → COMPLETED
    CANCELLED (from NEW, PENDING_PAYMENT, PAID, PACKED)

No edge leads backwards and there are no self-loops, so "transition to the
current state" is rejected like any other undefined move. Amounts are IDR
integers; ``total_idr`` is fixed at creation.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.exceptions import AlreadyShipped, IllegalTransition, PaymentNotAllowed
from marketplace.ordering.order.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    OrderPacked,
    OrderPaid,
    OrderShipped,
    PaymentSessionCreated,
    ShipmentBooked,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    NEW = "new"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PACKED = "packed"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ShippingStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED},
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# The happy path, in order. Used to walk forward across skipped steps.
_FORWARD_CHAIN = [
    OrderStatus.NEW,
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.PAID,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.COMPLETED,
]

# Carrier progress only moves up this ladder; terminal outcomes sit on top
_SHIPPING_RANK = {
    ShippingStatus.PENDING: 0,
    ShippingStatus.CONFIRMED: 1,
    ShippingStatus.PICKED_UP: 2,
    ShippingStatus.SHIPPED: 3,
    ShippingStatus.IN_TRANSIT: 4,
    ShippingStatus.DELIVERED: 5,
    ShippingStatus.RETURNED: 6,
    ShippingStatus.CANCELLED: 6,
}

PAYMENT_SESSION_TTL = timedelta(hours=24)


def allowed_transitions(status):
    """Legal next states for ``status`` (an OrderStatus or its wire value)."""
    return set(_VALID_TRANSITIONS[OrderStatus(status)])


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, as captured at checkout.

    ``area_id`` is the shipping aggregator's destination area code and is
    needed to book a shipment.
    """

    recipient_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    email = String(max_length=255)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=10)
    area_id = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """Frozen snapshot of a product at order time.

    Later catalog edits never reach historical orders.
    """

    product_id = Identifier(required=True)
    product_title = String(required=True, max_length=255)
    price_idr = Integer(required=True, min_value=0)
    quantity = Float(required=True)
    unit = String(max_length=20, default="kg")
    coffee_type = String(max_length=50)
    grind_level = String(max_length=50)
    condition = String(max_length=50)

    @property
    def line_total_idr(self) -> int:
        return round(self.price_idr * self.quantity)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    buyer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.NEW.value)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    courier_company = String(max_length=50)
    courier_service = String(max_length=50)
    notes = Text()

    subtotal_idr = Integer(default=0, min_value=0)
    shipping_fee_idr = Integer(default=0, min_value=0)
    total_idr = Integer(default=0, min_value=0)

    # Payment gateway
    payment_reference = String(max_length=100)
    payment_token = String(max_length=255)
    payment_url = String(max_length=500)
    payment_expires_at = DateTime()
    payment_status = String(max_length=50)
    payment_type = String(max_length=50)
    payment_bank = String(max_length=50)
    masked_card = String(max_length=30)
    gateway_transaction_id = String(max_length=100)

    # Shipping aggregator
    shipment_id = String(max_length=100)
    shipment_reference = String(max_length=150)
    tracking_number = String(max_length=100)
    shipping_status = String(choices=ShippingStatus)

    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)

    created_at = DateTime()
    updated_at = DateTime()
    paid_at = DateTime()
    packed_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        buyer_id,
        items_data,
        shipping_address,
        shipping_fee_idr,
        courier_company=None,
        courier_service=None,
        notes=None,
    ):
        """Create a new order from validated cart lines.

        Args:
            buyer_id: The buyer placing the order.
            items_data: List of dicts with product_id, product_title, price_idr,
                        quantity, unit, coffee_type, grind_level, condition.
            shipping_address: Dict matching ShippingAddress.
            shipping_fee_idr: Quoted shipping fee, IDR.
        """
        now = datetime.now(UTC)
        items = [OrderItem(**item) for item in items_data]
        subtotal = sum(item.line_total_idr for item in items)
        shipping_fee = int(shipping_fee_idr or 0)

        order = cls(
            buyer_id=str(buyer_id),
            status=OrderStatus.NEW.value,
            items=items,
            shipping_address=ShippingAddress(**shipping_address),
            courier_company=courier_company,
            courier_service=courier_service,
            notes=notes,
            subtotal_idr=subtotal,
            shipping_fee_idr=shipping_fee,
            total_idr=subtotal + shipping_fee,
            shipping_status=ShippingStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                buyer_id=str(buyer_id),
                items=json.dumps(items_data),
                subtotal_idr=subtotal,
                shipping_fee_idr=shipping_fee,
                total_idr=order.total_idr,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def can_transition(self, target) -> bool:
        return OrderStatus(target) in _VALID_TRANSITIONS[self.current_status]

    def _assert_can_transition(self, target):
        """Validate that the current state allows transition to target."""
        target = OrderStatus(target)
        if not self.can_transition(target):
            raise IllegalTransition(self.status, target.value)

    def path_to(self, target) -> list[OrderStatus] | None:
        """States to enter, in order, to get from the current status to ``target``.

        Returns an empty list when already there, ``None`` when unreachable
        (backwards, terminal, or off the happy path).
        """
        target = OrderStatus(target)
        current = self.current_status
        if target == current:
            return []
        if target == OrderStatus.CANCELLED:
            return [target] if self.can_transition(target) else None
        if current not in _FORWARD_CHAIN or target not in _FORWARD_CHAIN:
            return None

        start = _FORWARD_CHAIN.index(current)
        end = _FORWARD_CHAIN.index(target)
        if end <= start:
            return None
        return _FORWARD_CHAIN[start + 1 : end + 1]

    def can_reach(self, target) -> bool:
        return bool(self.path_to(target))

    def advance_to(self, target, **context) -> list[OrderStatus]:
        """Walk forward to ``target`` one legal step at a time.

        Used when an external system reports progress that skips steps we
        never saw (a carrier saying "delivered" for an order still marked
        paid). Returns the states entered.
        """
        path = self.path_to(target)
        if not path:
            raise IllegalTransition(self.status, OrderStatus(target).value)
        for step in path:
            self.transition_to(step, **context)
        return path

    def transition_to(self, target, reason=None, cancelled_by=None):
        """Move to ``target`` and apply the side effects of entering it."""
        target = OrderStatus(target)
        self._assert_can_transition(target)
        previous = self.current_status
        now = datetime.now(UTC)

        self.status = target.value
        self.updated_at = now

        if target == OrderStatus.PENDING_PAYMENT:
            self.payment_status = self.payment_status or "pending"
        elif target == OrderStatus.PAID:
            self.paid_at = now
            self.raise_(
                OrderPaid(
                    order_id=str(self.id),
                    buyer_id=str(self.buyer_id),
                    total_idr=self.total_idr,
                    paid_at=now,
                )
            )
        elif target == OrderStatus.PACKED:
            self.packed_at = now
            self.raise_(OrderPacked(order_id=str(self.id), packed_at=now))
        elif target == OrderStatus.SHIPPED:
            self.shipped_at = now
            self.shipping_status = ShippingStatus.SHIPPED.value
            self.raise_(
                OrderShipped(
                    order_id=str(self.id),
                    tracking_number=self.tracking_number,
                    shipped_at=now,
                )
            )
        elif target == OrderStatus.COMPLETED:
            self.delivered_at = now
            self.shipping_status = ShippingStatus.DELIVERED.value
            self.raise_(OrderCompleted(order_id=str(self.id), delivered_at=now))
        elif target == OrderStatus.CANCELLED:
            self.cancelled_at = now
            self.shipping_status = ShippingStatus.CANCELLED.value
            self.cancellation_reason = reason
            self.cancelled_by = cancelled_by
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    previous_status=previous.value,
                    reason=reason,
                    cancelled_by=cancelled_by,
                    cancelled_at=now,
                )
            )

    def mark_paid(self):
        self.transition_to(OrderStatus.PAID)

    def mark_packed(self):
        self.transition_to(OrderStatus.PACKED)

    def mark_shipped(self):
        self.transition_to(OrderStatus.SHIPPED)

    def mark_completed(self):
        self.transition_to(OrderStatus.COMPLETED)

    def cancel(self, reason=None, cancelled_by="system"):
        self.transition_to(OrderStatus.CANCELLED, reason=reason, cancelled_by=cancelled_by)

    # -------------------------------------------------------------------
    # Payment session
    # -------------------------------------------------------------------
    def accepts_payment(self) -> bool:
        return self.current_status in (OrderStatus.NEW, OrderStatus.PENDING_PAYMENT)

    def has_active_payment_session(self, now=None) -> bool:
        if not self.payment_token or self.payment_expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return _aware(self.payment_expires_at) > now

    def record_payment_session(self, payment_reference, token, redirect_url, expires_at):
        """Store a freshly opened gateway session and await payment.

        On a NEW order this is the move to PENDING_PAYMENT. On an order that
        is already pending (the previous session expired) only the session
        fields change.
        """
        if not self.accepts_payment():
            raise PaymentNotAllowed(f"Order in status {self.status} cannot be paid")

        self.payment_reference = payment_reference
        self.payment_token = token
        self.payment_url = redirect_url
        self.payment_expires_at = expires_at
        self.payment_status = "pending"
        self.updated_at = datetime.now(UTC)

        if self.current_status == OrderStatus.NEW:
            self.transition_to(OrderStatus.PENDING_PAYMENT)

        self.raise_(
            PaymentSessionCreated(
                order_id=str(self.id),
                payment_reference=payment_reference,
                expires_at=expires_at,
            )
        )

    def record_payment_details(
        self,
        payment_status,
        payment_type=None,
        bank=None,
        masked_card=None,
        transaction_id=None,
    ):
        """Mirror what the gateway reports. Missing values keep what we had."""
        self.payment_status = payment_status
        self.payment_type = payment_type or self.payment_type
        self.payment_bank = bank or self.payment_bank
        self.masked_card = masked_card or self.masked_card
        self.gateway_transaction_id = transaction_id or self.gateway_transaction_id
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Shipment
    # -------------------------------------------------------------------
    def record_shipment(self, shipment_id, shipment_reference, tracking_number=None):
        """Store the aggregator's shipment. Only one shipment per order."""
        if self.shipment_id:
            raise AlreadyShipped(f"Order {self.id} already has shipment {self.shipment_id}")

        self.shipment_id = shipment_id
        self.shipment_reference = shipment_reference
        self.tracking_number = tracking_number
        self.shipping_status = ShippingStatus.CONFIRMED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ShipmentBooked(
                order_id=str(self.id),
                shipment_id=shipment_id,
                tracking_number=tracking_number,
                courier_company=self.courier_company,
            )
        )

    def record_shipping_progress(self, shipping_status, tracking_number=None) -> bool:
        """Record carrier progress if it moves forward. Returns whether it changed."""
        if tracking_number:
            self.tracking_number = tracking_number

        new = ShippingStatus(shipping_status)
        current = ShippingStatus(self.shipping_status or ShippingStatus.PENDING.value)
        if _SHIPPING_RANK[new] <= _SHIPPING_RANK[current]:
            return False

        self.shipping_status = new.value
        self.updated_at = datetime.now(UTC)
        return True
