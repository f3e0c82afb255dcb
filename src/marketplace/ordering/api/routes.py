"""FastAPI routes for carts and orders."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from marketplace.api.auth import admin_principal, current_principal, ensure_can_view
from marketplace.identity import Principal
from marketplace.ordering.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartLineResponse,
    CartQuantityResponse,
    CartResponse,
    CartValidationResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderItemResponse,
    OrderResponse,
    ShippingAddressSchema,
    StatusResponse,
    UpdateCartQuantityRequest,
)
from marketplace.ordering.cart.cart import load_cart
from marketplace.ordering.cart.management import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity
from marketplace.ordering.cart.validation import find_product, validate_cart
from marketplace.ordering.checkout import checkout
from marketplace.ordering.order.lifecycle import CancelOrder, MarkOrderPacked
from marketplace.ordering.order.order import Order, allowed_transitions
from marketplace.payments.api.schemas import PaymentSessionResponse
from marketplace.payments.session import open_payment_session

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(principal: Principal = Depends(current_principal)) -> CartResponse:
    cart = load_cart(principal.user_id)
    if cart is None:
        return CartResponse(buyer_id=principal.user_id)

    lines = []
    for entry in cart.entries:
        product = find_product(entry.product_id)
        lines.append(
            CartLineResponse(
                product_id=str(entry.product_id),
                title=product.title if product else None,
                price_idr=product.price_idr if product else None,
                quantity=entry.quantity,
                available=product.stock_qty if product else None,
                line_total_idr=round(product.price_idr * entry.quantity) if product else 0,
            )
        )
    return CartResponse(
        buyer_id=principal.user_id,
        items=lines,
        items_count=len(lines),
        subtotal_idr=sum(line.line_total_idr for line in lines),
    )


@cart_router.post("/items", status_code=201, response_model=CartQuantityResponse)
async def add_to_cart(body: AddToCartRequest, principal: Principal = Depends(current_principal)):
    command = AddToCart(buyer_id=principal.user_id, product_id=body.product_id, quantity=body.quantity)
    quantity = current_domain.process(command, asynchronous=False)
    return CartQuantityResponse(product_id=body.product_id, quantity=quantity)


@cart_router.put("/items/{product_id}", response_model=CartQuantityResponse)
async def update_cart_quantity(
    product_id: str,
    body: UpdateCartQuantityRequest,
    principal: Principal = Depends(current_principal),
):
    command = UpdateCartQuantity(buyer_id=principal.user_id, product_id=product_id, quantity=body.quantity)
    quantity = current_domain.process(command, asynchronous=False)
    return CartQuantityResponse(product_id=product_id, quantity=quantity or 0)


@cart_router.delete("/items/{product_id}", status_code=204)
async def remove_from_cart(product_id: str, principal: Principal = Depends(current_principal)):
    current_domain.process(RemoveFromCart(buyer_id=principal.user_id, product_id=product_id), asynchronous=False)


@cart_router.delete("", status_code=204)
async def clear_cart(principal: Principal = Depends(current_principal)):
    current_domain.process(ClearCart(buyer_id=principal.user_id), asynchronous=False)


@cart_router.get("/validate", response_model=CartValidationResponse)
async def validate(principal: Principal = Depends(current_principal)) -> CartValidationResponse:
    violations = validate_cart(principal.user_id)
    return CartValidationResponse(valid=not violations, violations=[v.to_dict() for v in violations])


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def order_response(order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        buyer_id=str(order.buyer_id),
        status=order.status,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                product_title=item.product_title,
                price_idr=item.price_idr,
                quantity=item.quantity,
                unit=item.unit,
                line_total_idr=item.line_total_idr,
            )
            for item in order.items
        ],
        shipping_address=ShippingAddressSchema(
            recipient_name=address.recipient_name,
            phone=address.phone,
            email=address.email,
            address=address.address,
            city=address.city,
            postal_code=address.postal_code,
            area_id=address.area_id,
        )
        if address
        else None,
        courier_company=order.courier_company,
        courier_service=order.courier_service,
        subtotal_idr=order.subtotal_idr,
        shipping_fee_idr=order.shipping_fee_idr,
        total_idr=order.total_idr,
        payment_status=order.payment_status,
        payment_type=order.payment_type,
        payment_reference=order.payment_reference,
        tracking_number=order.tracking_number,
        shipping_status=order.shipping_status,
        cancellation_reason=order.cancellation_reason,
        allowed_transitions=sorted(s.value for s in allowed_transitions(order.status)),
        created_at=order.created_at,
        paid_at=order.paid_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
    )


@order_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
async def place_order(body: CheckoutRequest, principal: Principal = Depends(current_principal)):
    """Turn the caller's cart into an order. 400 with itemised violations when the cart is not sellable."""
    result = checkout(
        buyer_id=principal.user_id,
        shipping_address=body.shipping_address.model_dump(),
        shipping_fee_idr=body.shipping_fee_idr,
        courier_company=body.courier_company,
        courier_service=body.courier_service,
        notes=body.notes,
    )
    return CheckoutResponse(
        order_id=result.order_id,
        total_idr=result.total_idr,
        status=result.status,
        items_count=result.items_count,
        payment_url=result.payment_url,
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, principal: Principal = Depends(current_principal)) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    ensure_can_view(order, principal)
    return order_response(order)


@order_router.post("/{order_id}/retry-payment", response_model=PaymentSessionResponse)
def retry_payment(order_id: str, principal: Principal = Depends(current_principal)):
    """Open a payment session again, or hand back the one still active."""
    order = current_domain.repository_for(Order).get(order_id)
    ensure_can_view(order, principal)
    return PaymentSessionResponse.from_view(open_payment_session(order_id))


@order_router.put("/{order_id}/pack", response_model=StatusResponse, dependencies=[Depends(admin_principal)])
async def pack_order(order_id: str) -> StatusResponse:
    status = current_domain.process(MarkOrderPacked(order_id=order_id), asynchronous=False)
    return StatusResponse(order_id=order_id, status=status)


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    principal: Principal = Depends(admin_principal),
) -> StatusResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason, cancelled_by=f"admin:{principal.user_id}")
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(order_id=order_id, status=status)
