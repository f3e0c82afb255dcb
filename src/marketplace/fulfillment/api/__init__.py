"""Fulfillment API package."""

from marketplace.fulfillment.api.routes import shipment_router, shipping_router

__all__ = ["shipment_router", "shipping_router"]
