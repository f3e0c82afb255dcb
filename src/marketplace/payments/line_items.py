"""Midtrans request mapping — item details, customer details, references.

Midtrans only accepts integer quantities and insists that
``gross_amount == Σ price × quantity``. Orders sell coffee grounds by the
kilogram, so a fractional line becomes a single item of quantity 1 priced at
the rounded line total, and its name says how much it was.
"""

import random
import time

MAX_NAME_LENGTH = 50
SHIPPING_ITEM_ID = "shipping"


def _truncate(name: str) -> str:
    return name[:MAX_NAME_LENGTH]


def _format_qty(quantity) -> str:
    return f"{float(quantity):g}"


def item_detail(product_id, title, price_idr, quantity, unit="kg") -> dict:
    quantity = float(quantity)
    if quantity.is_integer():
        return {
            "id": str(product_id),
            "price": int(price_idr),
            "quantity": int(quantity),
            "name": _truncate(title),
        }
    return {
        "id": str(product_id),
        "price": round(price_idr * quantity),
        "quantity": 1,
        "name": _truncate(f"{title} ({_format_qty(quantity)} {unit or 'kg'})"),
    }


def build_item_details(order) -> list[dict]:
    """Line items for ``order``; their total equals ``order.total_idr``."""
    details = [
        item_detail(item.product_id, item.product_title, item.price_idr, item.quantity, item.unit)
        for item in order.items
    ]
    if order.shipping_fee_idr:
        courier = " ".join(p for p in (order.courier_company, order.courier_service) if p).upper()
        details.append(
            {
                "id": SHIPPING_ITEM_ID,
                "price": int(order.shipping_fee_idr),
                "quantity": 1,
                "name": _truncate(f"Ongkir - {courier}" if courier else "Ongkir"),
            }
        )
    return details


def gross_amount(item_details: list[dict]) -> int:
    return sum(d["price"] * d["quantity"] for d in item_details)


def customer_details(order) -> dict:
    address = order.shipping_address
    if address is None:
        return {}
    first, _, last = (address.recipient_name or "").partition(" ")
    details = {"first_name": first, "phone": address.phone}
    if last:
        details["last_name"] = last
    if address.email:
        details["email"] = address.email
    details["shipping_address"] = {
        "first_name": first,
        "phone": address.phone,
        "address": address.address,
        "city": address.city,
        "postal_code": address.postal_code,
        "country_code": "IDN",
    }
    return details


def new_payment_reference(now_ms: int | None = None) -> str:
    """Gateway order id. Unique per session: Midtrans refuses a reused order id."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"SIKUPI-ORD-{now_ms}-{random.randint(0, 999):03d}"
