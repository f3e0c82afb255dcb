"""Pydantic request/response schemas for the product and stock API."""

from pydantic import BaseModel, Field


class RegisterProductRequest(BaseModel):
    product_id: str | None = None
    title: str = Field(min_length=1, max_length=255)
    price_idr: int = Field(ge=0)
    stock_qty: float = Field(ge=0)
    unit: str = "kg"
    coffee_type: str | None = None
    grind_level: str | None = None
    condition: str | None = None
    published: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Arabica Gayo coffee grounds",
                    "price_idr": 25000,
                    "stock_qty": 12.5,
                    "coffee_type": "arabica",
                    "grind_level": "medium",
                    "condition": "dry",
                }
            ]
        }
    }


class AdjustStockRequest(BaseModel):
    stock_qty: float = Field(ge=0)
    reason: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    title: str
    price_idr: int
    stock_qty: float
    unit: str
    coffee_type: str | None = None
    grind_level: str | None = None
    condition: str | None = None
    published: bool
