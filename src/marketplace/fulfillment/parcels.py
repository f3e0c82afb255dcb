"""Parcel and contact mapping for the shipping aggregator.

Couriers price by weight and volume. A kilogram of coffee grounds is packed
in a 20×15×10 cm pouch. A line of ``q`` kg ships as one parcel carrying the
whole weight, sized as ``ceil(q)`` pouches stacked along length and height.
"""

import math
import os

PARCEL_WIDTH_CM = 15
PARCEL_LENGTH_PER_KG_CM = 20
PARCEL_HEIGHT_PER_KG_CM = 10
PARCEL_CATEGORY = "food_and_drink"

# (service as sold, aggregator courier_type) per courier company
_COURIER_TYPES = {
    "jne": {"reg": "reg", "oke": "oke", "yes": "yes"},
    "jnt": {"reg": "ez", "ez": "ez", "express": "express"},
    "tiki": {"reg": "reg", "ons": "ons"},
    "pos": {"reg": "pos_reguler", "pos_reguler": "pos_reguler", "nextday": "pos_nextday", "pos_nextday": "pos_nextday"},
}


def kg_to_grams(kg) -> int:
    return round(float(kg) * 1000)


def parcel_item(product_id, title, price_idr, quantity) -> dict:
    packs = math.ceil(float(quantity))
    return {
        "name": title,
        "description": f"{float(quantity):g} kg",
        "category": PARCEL_CATEGORY,
        "sku": f"PRD-{product_id}",
        "value": round(price_idr * float(quantity)),
        "quantity": 1,
        "weight": kg_to_grams(quantity),
        "length": PARCEL_LENGTH_PER_KG_CM * packs,
        "width": PARCEL_WIDTH_CM,
        "height": PARCEL_HEIGHT_PER_KG_CM * packs,
    }


def parcels_for_order(order) -> list[dict]:
    return [parcel_item(i.product_id, i.product_title, i.price_idr, i.quantity) for i in order.items]


def courier_type(company: str, service: str) -> str:
    """Aggregator courier type for a courier service as the buyer picked it."""
    company = (company or "").lower()
    service = (service or "").lower()
    return _COURIER_TYPES.get(company, {}).get(service, service)


def warehouse_origin() -> dict:
    """Origin contact and address, read from WAREHOUSE_* settings."""
    return {
        "contact_name": os.environ.get("WAREHOUSE_CONTACT_NAME", "Sikupi Warehouse"),
        "contact_phone": os.environ.get("WAREHOUSE_CONTACT_PHONE", "081234567890"),
        "contact_email": os.environ.get("WAREHOUSE_CONTACT_EMAIL", "warehouse@sikupi.com"),
        "address": os.environ.get("WAREHOUSE_ADDRESS", "Jl. T. Nyak Arief, Banda Aceh"),
        "city": os.environ.get("WAREHOUSE_CITY", "Banda Aceh"),
        "postal_code": os.environ.get("WAREHOUSE_POSTAL_CODE", "23111"),
        "area_id": os.environ.get("WAREHOUSE_AREA_ID"),
    }
