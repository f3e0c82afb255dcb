"""Webhook acknowledgement schema."""

from pydantic import BaseModel


class WebhookAck(BaseModel):
    status: str = "ok"
    outcome: str
    order_id: str | None = None
    order_status: str | None = None
