"""Pydantic request/response schemas for shipping."""

from pydantic import BaseModel, Field


class RateLineSchema(BaseModel):
    product_id: str
    quantity: float = Field(gt=0)


class RatesRequest(BaseModel):
    destination_postal_code: str
    destination_area_id: str | None = None
    items: list[RateLineSchema] | None = None  # defaults to the caller's cart
    couriers: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [{"destination_postal_code": "23122", "items": [{"product_id": "prd-001", "quantity": 2.5}]}]
        }
    }


class RateQuoteResponse(BaseModel):
    courier_company: str
    courier_service: str
    courier_name: str
    service_name: str
    price: int
    duration: str | None = None
    description: str | None = None


class RatesResponse(BaseModel):
    rates: list[RateQuoteResponse]


class ShipmentResponse(BaseModel):
    order_id: str
    status: str
    shipment_id: str
    tracking_number: str | None = None
    shipping_status: str | None = None


class TrackingResponse(BaseModel):
    order_id: str
    shipment_id: str
    tracking_number: str | None = None
    courier_company: str | None = None
    courier_service: str | None = None
    shipping_status: str | None = None
    carrier_status: str | None = None
    link: str | None = None
    history: list[dict] = []
