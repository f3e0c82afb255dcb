"""Gateway callbacks.

Both endpoints answer 200 for anything the reconciler absorbs (duplicates,
unknown orders, unmapped or stale statuses) so the gateway stops retrying.
Only a bad signature (401) or a body that is not a JSON object (422) is
refused.
"""

import json

import structlog
from fastapi import APIRouter, Header, HTTPException, Request

from marketplace.reconciliation.api.schemas import WebhookAck
from marketplace.reconciliation.reconciler import reconcile

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _json_body(request: Request) -> tuple[bytes, dict]:
    raw = await request.body()
    try:
        payload = json.loads(raw or b"{}")
    except ValueError:
        raise HTTPException(status_code=422, detail="Body is not valid JSON") from None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=422, detail="Body must be a JSON object")
    return raw, payload


def _ack(result) -> WebhookAck:
    return WebhookAck(outcome=result.outcome.value, order_id=result.order_id, order_status=result.status)


@router.post("/payment", response_model=WebhookAck)
async def payment_notification(request: Request) -> WebhookAck:
    """Midtrans HTTP notification. The signature travels in the body."""
    _, payload = await _json_body(request)
    logger.info(
        "Payment notification received",
        payment_reference=payload.get("order_id"),
        transaction_status=payload.get("transaction_status"),
    )
    return _ack(reconcile("midtrans", payload))


@router.post("/shipping", response_model=WebhookAck)
async def shipping_notification(
    request: Request,
    x_biteship_signature: str | None = Header(default=None),
) -> WebhookAck:
    """Biteship status callback, signed over the raw body."""
    raw, payload = await _json_body(request)
    logger.info("Shipping notification received", shipment_id=payload.get("order_id"), status=payload.get("status"))
    return _ack(reconcile("biteship", payload, raw_body=raw, signature=x_biteship_signature))
