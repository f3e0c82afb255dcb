"""Sikupi marketplace FastAPI application.

Serves checkout, payment and shipping, the gateway webhooks and the
notification stream. Commands are processed synchronously inside the request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay (memory stores by default,
# PostgreSQL under "production").
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context, current_env

marketplace.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Sikupi Marketplace API",
    description="Coffee-grounds marketplace — orders, payments, shipping and notifications",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context and a request id for each request."""
    clear_context()
    add_context(request_id=request.headers.get("x-request-id") or uuid.uuid4().hex[:12])
    with marketplace.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import register_error_handlers  # noqa: E402
from marketplace.fulfillment.api import shipment_router, shipping_router  # noqa: E402
from marketplace.inventory.api import router as product_router  # noqa: E402
from marketplace.notifications.api import router as notification_router  # noqa: E402
from marketplace.ordering.api import cart_router, order_router  # noqa: E402
from marketplace.payments.api import router as payment_router  # noqa: E402
from marketplace.reconciliation.api import router as webhook_router  # noqa: E402

app.include_router(product_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(shipping_router)
app.include_router(shipment_router)
app.include_router(webhook_router)
app.include_router(notification_router)

register_exception_handlers(app)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": marketplace.name,
            "environment": current_env(),
        }
    )
