"""FastAPI routes for shipping rates, shipment booking and tracking."""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.api.auth import admin_principal, current_principal, ensure_can_view
from marketplace.fulfillment.api.schemas import (
    RateQuoteResponse,
    RatesRequest,
    RatesResponse,
    ShipmentResponse,
    TrackingResponse,
)
from marketplace.fulfillment.rates import DEFAULT_COURIERS, quote_rates
from marketplace.fulfillment.shipment import create_shipment, get_tracking
from marketplace.identity import Principal
from marketplace.ordering.cart.cart import load_cart
from marketplace.ordering.cart.validation import find_product
from marketplace.ordering.order.order import Order

shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])
shipment_router = APIRouter(prefix="/orders", tags=["shipping"])


def _rate_lines(body: RatesRequest, buyer_id: str) -> list[dict]:
    if body.items is not None:
        wanted = [(line.product_id, line.quantity) for line in body.items]
    else:
        cart = load_cart(buyer_id)
        wanted = [(str(e.product_id), e.quantity) for e in cart.entries] if cart else []

    lines = []
    for product_id, quantity in wanted:
        product = find_product(product_id)
        if product is None:
            raise ValidationError({"items": [f"Unknown product: {product_id}"]})
        lines.append(
            {"product_id": product_id, "title": product.title, "price_idr": product.price_idr, "quantity": quantity}
        )
    if not lines:
        raise ValidationError({"items": ["Nothing to ship"]})
    return lines


@shipping_router.post("/rates", response_model=RatesResponse)
def shipping_rates(body: RatesRequest, principal: Principal = Depends(current_principal)) -> RatesResponse:
    destination = {"postal_code": body.destination_postal_code, "area_id": body.destination_area_id}
    quotes = quote_rates(destination, _rate_lines(body, principal.user_id), body.couriers or DEFAULT_COURIERS)
    return RatesResponse(rates=[RateQuoteResponse(**asdict(q)) for q in quotes])


@shipment_router.post(
    "/{order_id}/shipment",
    status_code=201,
    response_model=ShipmentResponse,
    dependencies=[Depends(admin_principal)],
)
def book_shipment(order_id: str) -> ShipmentResponse:
    order = create_shipment(order_id)
    return ShipmentResponse(
        order_id=str(order.id),
        status=order.status,
        shipment_id=order.shipment_id,
        tracking_number=order.tracking_number,
        shipping_status=order.shipping_status,
    )


@shipment_router.get("/{order_id}/tracking", response_model=TrackingResponse)
def order_tracking(order_id: str, principal: Principal = Depends(current_principal)) -> TrackingResponse:
    order = current_domain.repository_for(Order).get(order_id)
    ensure_can_view(order, principal)
    return TrackingResponse(**get_tracking(order))
