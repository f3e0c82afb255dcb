"""Shipment booking and tracking.

Booking calls the aggregator before anything local changes. Only a
successful booking is recorded, and recording it moves the order to
``shipped`` in the same unit of work (through ``packed`` when the order was
still ``paid``).
"""

import random
import time

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import AlreadyShipped, PreconditionFailed
from marketplace.fulfillment.carrier import get_carrier
from marketplace.fulfillment.parcels import courier_type, parcels_for_order, warehouse_origin
from marketplace.notifications.helpers import notify_order_status
from marketplace.ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)

SHIPPABLE_STATUSES = {OrderStatus.PAID, OrderStatus.PACKED}


@marketplace.command(part_of="Order")
class RecordShipment:
    order_id = Identifier(required=True)
    shipment_id = String(required=True, max_length=100)
    shipment_reference = String(required=True, max_length=150)
    tracking_number = String(max_length=100)


@marketplace.command_handler(part_of=Order)
class ShipmentHandler:
    @handle(RecordShipment)
    def record_shipment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        order.record_shipment(
            shipment_id=command.shipment_id,
            shipment_reference=command.shipment_reference,
            tracking_number=command.tracking_number,
        )
        order.advance_to(OrderStatus.SHIPPED)
        notify_order_status(order)
        repo.add(order)
        return order.status


def new_shipment_reference(order_id, now_ms: int | None = None) -> str:
    """Reference that carries the order id, so callbacks can be traced back to it."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"SIKUPI-SHIP-{now_ms}-{random.randint(0, 999):03d}-{order_id}"


def _check_shippable(order):
    if order.shipment_id:
        raise AlreadyShipped(f"Order {order.id} already has shipment {order.shipment_id}")
    if order.current_status not in SHIPPABLE_STATUSES:
        raise PreconditionFailed(f"Order in status {order.status} cannot be shipped")

    address = order.shipping_address
    if address is None or not address.address:
        raise PreconditionFailed("Order has no shipping address")
    if not address.area_id:
        raise PreconditionFailed("Shipping address has no destination area")
    if not order.courier_company or not order.courier_service:
        raise PreconditionFailed("Order has no courier selected")


def shipment_request(order, reference: str) -> dict:
    """Aggregator order body for ``order``."""
    origin = warehouse_origin()
    address = order.shipping_address
    request = {
        "shipper_contact_name": origin["contact_name"],
        "shipper_contact_phone": origin["contact_phone"],
        "shipper_contact_email": origin["contact_email"],
        "shipper_organization": "Sikupi",
        "origin_contact_name": origin["contact_name"],
        "origin_contact_phone": origin["contact_phone"],
        "origin_address": origin["address"],
        "origin_postal_code": origin["postal_code"],
        "origin_note": "Coffee grounds warehouse",
        "destination_contact_name": address.recipient_name,
        "destination_contact_phone": address.phone,
        "destination_contact_email": address.email,
        "destination_address": f"{address.address}, {address.city}",
        "destination_postal_code": address.postal_code,
        "destination_area_id": address.area_id,
        "destination_note": order.notes or "",
        "courier_company": order.courier_company.lower(),
        "courier_type": courier_type(order.courier_company, order.courier_service),
        "delivery_type": "now",
        "order_note": f"Sikupi order {order.id}",
        "reference_id": reference,
        "items": parcels_for_order(order),
        "metadata": {"order_id": str(order.id), "payment_reference": order.payment_reference},
    }
    if origin.get("area_id"):
        request["origin_area_id"] = origin["area_id"]
    return request


def create_shipment(order_id) -> Order:
    """Book a shipment for a paid or packed order and mark it shipped."""
    order = current_domain.repository_for(Order).get(order_id)
    _check_shippable(order)

    reference = new_shipment_reference(order.id)
    booking = get_carrier().create_shipment(shipment_request(order, reference))

    current_domain.process(
        RecordShipment(
            order_id=str(order.id),
            shipment_id=booking.shipment_id,
            shipment_reference=booking.reference_id or reference,
            tracking_number=booking.tracking_number,
        ),
        asynchronous=False,
    )
    logger.info(
        "Shipment created",
        order_id=str(order.id),
        shipment_id=booking.shipment_id,
        tracking_number=booking.tracking_number,
    )
    return current_domain.repository_for(Order).get(order_id)


def get_tracking(order) -> dict:
    """Carrier tracking for ``order``, alongside what the order itself records."""
    if not order.shipment_id:
        raise PreconditionFailed("Order has not been shipped yet")

    tracking = get_carrier().get_tracking(order.shipment_id)
    return {
        "order_id": str(order.id),
        "shipment_id": order.shipment_id,
        "tracking_number": tracking.get("tracking_number") or order.tracking_number,
        "courier_company": order.courier_company,
        "courier_service": order.courier_service,
        "shipping_status": order.shipping_status,
        "carrier_status": tracking.get("status"),
        "link": tracking.get("link"),
        "history": tracking.get("history", []),
    }
