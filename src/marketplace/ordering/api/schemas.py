"""Pydantic request/response schemas for the cart and order API.

These are external contracts, kept apart from the Protean commands they are
translated into.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    recipient_name: str
    phone: str
    email: str | None = None
    address: str
    city: str
    postal_code: str
    area_id: str | None = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: float = Field(gt=0)


class UpdateCartQuantityRequest(BaseModel):
    quantity: float = Field(ge=0)


class CartLineResponse(BaseModel):
    product_id: str
    title: str | None = None
    price_idr: int | None = None
    quantity: float
    available: float | None = None
    line_total_idr: int = 0


class CartResponse(BaseModel):
    buyer_id: str
    items: list[CartLineResponse] = []
    items_count: int = 0
    subtotal_idr: int = 0


class CartQuantityResponse(BaseModel):
    product_id: str
    quantity: float


class CartValidationResponse(BaseModel):
    valid: bool
    violations: list[dict] = []


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: ShippingAddressSchema
    shipping_fee_idr: int = Field(default=0, ge=0)
    courier_company: str | None = None
    courier_service: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "recipient_name": "Cut Nyak Dhien",
                        "phone": "081234567890",
                        "email": "buyer@example.com",
                        "address": "Jl. Teuku Umar No. 12",
                        "city": "Banda Aceh",
                        "postal_code": "23122",
                        "area_id": "IDNP1IDNC1IDND1IDZ23122",
                    },
                    "shipping_fee_idr": 15000,
                    "courier_company": "jne",
                    "courier_service": "reg",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    total_idr: int
    status: str
    items_count: int
    next_step: str = "payment"
    payment_url: str


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    product_title: str
    price_idr: int
    quantity: float
    unit: str | None = None
    line_total_idr: int


class OrderResponse(BaseModel):
    order_id: str
    buyer_id: str
    status: str
    items: list[OrderItemResponse]
    shipping_address: ShippingAddressSchema | None = None
    courier_company: str | None = None
    courier_service: str | None = None
    subtotal_idr: int
    shipping_fee_idr: int
    total_idr: int
    payment_status: str | None = None
    payment_type: str | None = None
    payment_reference: str | None = None
    tracking_number: str | None = None
    shipping_status: str | None = None
    cancellation_reason: str | None = None
    allowed_transitions: list[str] = []
    created_at: datetime | None = None
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class StatusResponse(BaseModel):
    order_id: str
    status: str
