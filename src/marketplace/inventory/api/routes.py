"""FastAPI routes for products and the Stock Ledger."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from marketplace.api.auth import admin_principal
from marketplace.inventory.api.schemas import (
    AdjustStockRequest,
    ProductIdResponse,
    ProductResponse,
    RegisterProductRequest,
)
from marketplace.inventory.product import Product
from marketplace.inventory.stocking import AdjustStock, RegisterProduct

router = APIRouter(prefix="/products", tags=["products"])


def _product_response(product) -> ProductResponse:
    return ProductResponse(
        product_id=str(product.id),
        title=product.title,
        price_idr=product.price_idr,
        stock_qty=product.stock_qty,
        unit=product.unit,
        coffee_type=product.coffee_type,
        grind_level=product.grind_level,
        condition=product.condition,
        published=product.published,
    )


@router.post("", status_code=201, response_model=ProductIdResponse, dependencies=[Depends(admin_principal)])
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(**body.model_dump(exclude_none=True))
    product_id = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=product_id)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str) -> ProductResponse:
    product = current_domain.repository_for(Product).get(product_id)
    return _product_response(product)


@router.put("/{product_id}/stock", response_model=ProductResponse, dependencies=[Depends(admin_principal)])
async def adjust_stock(product_id: str, body: AdjustStockRequest) -> ProductResponse:
    command = AdjustStock(product_id=product_id, new_qty=body.stock_qty, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return _product_response(current_domain.repository_for(Product).get(product_id))
