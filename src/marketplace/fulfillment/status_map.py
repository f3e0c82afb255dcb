"""Biteship shipment status → (shipping status, order status).

The first element is what the order mirrors as carrier progress; the second
is the order status the report implies, or ``None`` when it only updates
progress. Statuses missing from the table are unmapped.
"""

from marketplace.ordering.order.order import OrderStatus, ShippingStatus

SHIPMENT_STATUS_MAP = {
    "confirmed": (ShippingStatus.CONFIRMED, None),
    "allocated": (ShippingStatus.CONFIRMED, None),
    "picking_up": (ShippingStatus.CONFIRMED, None),
    "picked": (ShippingStatus.PICKED_UP, OrderStatus.PACKED),
    "picked_up": (ShippingStatus.PICKED_UP, OrderStatus.PACKED),
    "dropping_off": (ShippingStatus.IN_TRANSIT, OrderStatus.SHIPPED),
    "on_process": (ShippingStatus.IN_TRANSIT, OrderStatus.SHIPPED),
    "in_transit": (ShippingStatus.IN_TRANSIT, OrderStatus.SHIPPED),
    "delivered": (ShippingStatus.DELIVERED, OrderStatus.COMPLETED),
    "cancelled": (ShippingStatus.CANCELLED, OrderStatus.CANCELLED),
    "rejected": (ShippingStatus.CANCELLED, OrderStatus.CANCELLED),
    "returned": (ShippingStatus.RETURNED, OrderStatus.CANCELLED),
}


def map_shipment_status(status: str | None):
    return SHIPMENT_STATUS_MAP.get((status or "").lower())
