"""Shipping rate quotes for a destination and a set of cart lines."""

import structlog

from marketplace.fulfillment.carrier import get_carrier
from marketplace.fulfillment.parcels import parcel_item, warehouse_origin

logger = structlog.get_logger(__name__)

DEFAULT_COURIERS = "jne,pos,tiki,sicepat,jnt,anteraja"


def quote_rates(destination: dict, lines: list[dict], couriers: str = DEFAULT_COURIERS):
    """Quotes for shipping ``lines`` to ``destination``, cheapest first.

    ``lines`` are dicts with product_id, title, price_idr and quantity (kg).
    """
    items = [parcel_item(l["product_id"], l["title"], l["price_idr"], l["quantity"]) for l in lines]
    quotes = get_carrier().get_rates(warehouse_origin(), destination, items, couriers)
    logger.info(
        "Shipping rates quoted",
        destination_postal_code=destination.get("postal_code"),
        quotes=len(quotes),
    )
    return sorted(quotes, key=lambda q: q.price)
