"""Pydantic request/response schemas for the payments API."""

from datetime import datetime

from pydantic import BaseModel


class CreateSessionRequest(BaseModel):
    order_id: str

    model_config = {"json_schema_extra": {"examples": [{"order_id": "7f1c5e2a-0d6b-4a8e-9f55-3c2d1b0a9e87"}]}}


class PaymentSessionResponse(BaseModel):
    order_id: str
    token: str
    redirect_url: str | None = None
    payment_reference: str
    expires_at: datetime
    reused: bool

    @classmethod
    def from_view(cls, view) -> "PaymentSessionResponse":
        return cls(
            order_id=view.order_id,
            token=view.token,
            redirect_url=view.redirect_url,
            payment_reference=view.payment_reference,
            expires_at=view.expires_at,
            reused=view.reused,
        )


class PaymentStatusResponse(BaseModel):
    order_id: str
    status: str
    payment_status: str | None = None
    transaction_status: str | None = None
    outcome: str
