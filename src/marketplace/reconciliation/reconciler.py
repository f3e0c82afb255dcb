"""Webhook reconciliation — apply external status reports to orders.

Every report, whether pushed by a webhook or pulled by polling the gateway,
goes through ``reconcile``:

1. verify the signature (``InvalidSignature`` on mismatch);
2. claim the delivery key in its own unit of work, so a redelivery is a
   duplicate before it can have any effect;
3. find the order and map the reported status;
4. apply it through the state machine in one unit of work, together with
   the gateway metadata and exactly one notification for the buyer.

Anything the local system cannot act on (unknown order, unmapped status,
stale or out-of-order report) is logged and returned as an outcome. Those
are never errors: gateways retry failed callbacks indefinitely.
"""

import json
from dataclasses import dataclass
from enum import Enum

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.exceptions import InvalidSignature
from marketplace.notifications.helpers import notify_order_status
from marketplace.ordering.order.lifecycle import cancel_order
from marketplace.ordering.order.order import Order, OrderStatus
from marketplace.reconciliation.idempotency import ClaimDelivery, idempotency_key
from marketplace.reconciliation.translators import translator_for

logger = structlog.get_logger(__name__)


class ReconcileOutcome(Enum):
    APPLIED = "applied"
    NO_OP = "no_op"  # already at the reported status; metadata refreshed
    STALE = "stale"
    DUPLICATE = "duplicate"
    UNMAPPED = "unmapped"
    ORDER_NOT_FOUND = "order_not_found"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    key: str | None = None
    order_id: str | None = None
    status: str | None = None

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "key": self.key,
            "order_id": self.order_id,
            "status": self.status,
        }


@marketplace.command(part_of="Order")
class ApplyExternalStatus:
    order_id = Identifier(required=True)
    source = String(required=True, max_length=30)
    body = Text(required=True)  # JSON document as the gateway sent it


@marketplace.command_handler(part_of=Order)
class ExternalStatusHandler:
    @handle(ApplyExternalStatus)
    def apply(self, command):
        translator = translator_for(command.source)
        report = translator.read(json.loads(command.body))
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        log = logger.bind(
            order_id=str(order.id),
            source=report.source,
            reported_status=report.reported_status,
            current_status=order.status,
        )

        if not translator.is_current(order, report):
            log.warning("Report for a superseded reference ignored", external_ref=report.external_ref)
            return ReconcileOutcome.STALE.value

        path = order.path_to(report.target) if report.target is not None else []
        if path is None:
            log.warning("Stale or out-of-order report ignored", target=report.target.value)
            return ReconcileOutcome.STALE.value

        if not path:
            translator.apply_details(order, report)
            repo.add(order)
            log.info("Order already at reported status; details refreshed")
            return ReconcileOutcome.NO_OP.value

        if report.target == OrderStatus.CANCELLED:
            cancel_order(
                order,
                reason=f"{report.source} reported {report.reported_status}",
                cancelled_by=report.source,
            )
        else:
            order.advance_to(report.target)
            notify_order_status(order)
        translator.apply_details(order, report)
        repo.add(order)

        log.info("External status applied", new_status=order.status, path=[s.value for s in path])
        return ReconcileOutcome.APPLIED.value


def reconcile(
    source: str,
    payload: dict,
    raw_body: bytes | None = None,
    signature: str | None = None,
    verify: bool = True,
) -> ReconcileResult:
    """Apply one external status report. Raises only ``InvalidSignature``."""
    translator = translator_for(source)
    if verify and not translator.verify(payload, raw_body=raw_body, signature=signature):
        logger.warning("Webhook signature rejected", source=source)
        raise InvalidSignature(source)

    report = translator.read(payload)
    if not report.external_ref or not report.reported_status:
        logger.warning("Report without reference or status ignored", source=source)
        return ReconcileResult(ReconcileOutcome.UNMAPPED)

    key = idempotency_key(report.source, report.external_ref, report.reported_status)
    claimed = current_domain.process(
        ClaimDelivery(
            source=report.source,
            external_ref=report.external_ref,
            reported_status=report.reported_status,
        ),
        asynchronous=False,
    )
    if not claimed:
        logger.info("Duplicate delivery ignored", key=key)
        return ReconcileResult(ReconcileOutcome.DUPLICATE, key=key)

    order = translator.find_order(report)
    if order is None:
        logger.warning("No order for external reference", key=key, external_ref=report.external_ref)
        return ReconcileResult(ReconcileOutcome.ORDER_NOT_FOUND, key=key)

    if not report.is_mapped:
        logger.warning("Unmapped external status", key=key, order_id=str(order.id))
        return ReconcileResult(ReconcileOutcome.UNMAPPED, key=key, order_id=str(order.id), status=order.status)

    outcome = current_domain.process(
        ApplyExternalStatus(order_id=str(order.id), source=report.source, body=json.dumps(payload, default=str)),
        asynchronous=False,
    )
    order = current_domain.repository_for(Order).get(order.id)
    return ReconcileResult(ReconcileOutcome(outcome), key=key, order_id=str(order.id), status=order.status)
