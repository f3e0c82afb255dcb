"""FastAPI routes for payment sessions and payment status."""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace.api.auth import current_principal, ensure_can_view
from marketplace.identity import Principal
from marketplace.ordering.order.order import Order
from marketplace.payments.api.schemas import CreateSessionRequest, PaymentSessionResponse, PaymentStatusResponse
from marketplace.payments.session import open_payment_session
from marketplace.payments.status import sync_payment_status

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create-session", response_model=PaymentSessionResponse)
def create_session(body: CreateSessionRequest, principal: Principal = Depends(current_principal)):
    """Open a gateway payment session. Returns the active one if it has not expired."""
    order = current_domain.repository_for(Order).get(body.order_id)
    ensure_can_view(order, principal)
    return PaymentSessionResponse.from_view(open_payment_session(body.order_id))


@router.get("/status", response_model=PaymentStatusResponse)
def payment_status(order_id: str = Query(...), principal: Principal = Depends(current_principal)):
    """Poll the gateway and reconcile, for when the notification has not arrived."""
    order = current_domain.repository_for(Order).get(order_id)
    ensure_can_view(order, principal)
    return PaymentStatusResponse(**sync_payment_status(order_id))
