"""Payment sessions — open (or reuse) a gateway session for an order.

The gateway call happens first and outside any unit of work; only when it
succeeds does ``RecordPaymentSession`` move the order. A timeout therefore
fails the buyer's request without touching the order, and the retry is safe.

Opening a session is idempotent: while the order holds an unexpired session
the same token comes back. Two racing requests may both reach the gateway,
but the second ``RecordPaymentSession`` finds the first one's session and
returns that token instead of replacing it.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import PaymentNotAllowed
from marketplace.ordering.order.order import PAYMENT_SESSION_TTL, Order
from marketplace.payments.gateway import get_gateway
from marketplace.payments.line_items import (
    build_item_details,
    customer_details,
    gross_amount,
    new_payment_reference,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentSessionView:
    order_id: str
    token: str
    redirect_url: str | None
    payment_reference: str
    expires_at: datetime
    reused: bool


@marketplace.command(part_of="Order")
class RecordPaymentSession:
    order_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=100)
    token = String(required=True, max_length=255)
    redirect_url = String(max_length=500)
    expires_at = DateTime(required=True)


def _view(order, reused) -> PaymentSessionView:
    return PaymentSessionView(
        order_id=str(order.id),
        token=order.payment_token,
        redirect_url=order.payment_url,
        payment_reference=order.payment_reference,
        expires_at=order.payment_expires_at,
        reused=reused,
    )


@marketplace.command_handler(part_of=Order)
class PaymentSessionHandler:
    @handle(RecordPaymentSession)
    def record_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if order.has_active_payment_session():
            logger.info(
                "Concurrent payment session discarded",
                order_id=str(order.id),
                discarded_reference=command.payment_reference,
            )
            return False

        order.record_payment_session(
            payment_reference=command.payment_reference,
            token=command.token,
            redirect_url=command.redirect_url,
            expires_at=command.expires_at,
        )
        repo.add(order)
        return True


def open_payment_session(order_id) -> PaymentSessionView:
    """Return a usable payment session for ``order_id``, creating one only when needed."""
    order = current_domain.repository_for(Order).get(order_id)
    if not order.accepts_payment():
        raise PaymentNotAllowed(f"Order in status {order.status} cannot be paid")

    if order.has_active_payment_session():
        logger.info("Reusing payment session", order_id=str(order.id), payment_reference=order.payment_reference)
        return _view(order, reused=True)

    items = build_item_details(order)
    reference = new_payment_reference()
    result = get_gateway().create_session(
        payment_reference=reference,
        gross_amount=gross_amount(items),
        item_details=items,
        customer_details=customer_details(order),
        custom_fields={"custom_field1": str(order.buyer_id), "custom_field2": str(order.id)},
        expiry_hours=int(PAYMENT_SESSION_TTL.total_seconds() // 3600),
    )

    recorded = current_domain.process(
        RecordPaymentSession(
            order_id=str(order.id),
            payment_reference=reference,
            token=result.token,
            redirect_url=result.redirect_url,
            expires_at=datetime.now(UTC) + PAYMENT_SESSION_TTL,
        ),
        asynchronous=False,
    )

    order = current_domain.repository_for(Order).get(order_id)
    if recorded:
        logger.info("Payment session created", order_id=str(order.id), payment_reference=reference)
    return _view(order, reused=not recorded)
