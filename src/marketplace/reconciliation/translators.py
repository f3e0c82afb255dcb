"""Per-gateway translation of webhook bodies.

A translator is the only place that knows a gateway's payload shape and
status vocabulary. It verifies the signature, reads the external reference
and status, finds the order the report is about, and maps the status to an
internal target. The reconciler works only with ``ExternalReport``.
"""

import os
import re
from dataclasses import dataclass, field

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.fulfillment.carrier import get_carrier
from marketplace.fulfillment.status_map import map_shipment_status
from marketplace.ordering.order.order import Order, OrderStatus, ShippingStatus
from marketplace.payments.gateway import get_gateway
from marketplace.payments.gateway.midtrans_adapter import status_from_payload
from marketplace.payments.status_map import map_transaction_status
from marketplace.utils.logging import current_env

logger = structlog.get_logger(__name__)

SHIPMENT_REFERENCE_PATTERN = re.compile(r"^SIKUPI-SHIP-\d+-\d+-(.+)$")


def signature_required() -> bool:
    return os.environ.get("WEBHOOK_REQUIRE_SIGNATURE", "false").lower() == "true"


def accept_unsigned(source: str, **context) -> bool:
    """Whether a webhook that carries no signature may proceed.

    Unsigned bodies are accepted unless ``WEBHOOK_REQUIRE_SIGNATURE`` is set.
    Outside development they are logged as errors so forged posts stand out
    in operational logs.
    """
    required = signature_required()
    log = logger.error if required or current_env() in ("production", "staging") else logger.warning
    log("Webhook without signature", source=source, rejected=required, **context)
    return not required


@dataclass(frozen=True)
class ExternalReport:
    """One status report from an external gateway, in internal terms."""

    source: str
    external_ref: str
    reported_status: str
    target: OrderStatus | None = None
    shipping_status: ShippingStatus | None = None
    details: dict = field(default_factory=dict)

    @property
    def is_mapped(self) -> bool:
        return self.target is not None or self.shipping_status is not None


def _order_or_none(order_id):
    if not order_id:
        return None
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        return None


def _first_order_where(**filters):
    results = current_domain.repository_for(Order)._dao.query.filter(**filters).all().items
    return results[0] if results else None


class MidtransTranslator:
    source = "midtrans"

    def verify(self, payload: dict, raw_body: bytes | None = None, signature: str | None = None) -> bool:
        if not payload.get("signature_key"):
            return accept_unsigned(self.source, payment_reference=payload.get("order_id"))
        return get_gateway().verify_signature(payload)

    def read(self, payload: dict) -> ExternalReport:
        status = status_from_payload(payload)
        raw = status.raw
        return ExternalReport(
            source=self.source,
            external_ref=status.payment_reference,
            reported_status=(status.transaction_status or "").lower(),
            target=map_transaction_status(status.transaction_status, status.fraud_status),
            details={
                "order_id": raw.get("custom_field2"),
                "payment_type": status.payment_type,
                "bank": raw.get("bank"),
                "masked_card": raw.get("masked_card"),
                "transaction_id": status.transaction_id,
                "fraud_status": status.fraud_status,
            },
        )

    def find_order(self, report: ExternalReport):
        return _order_or_none(report.details.get("order_id")) or _first_order_where(
            payment_reference=report.external_ref
        )

    def is_current(self, order, report: ExternalReport) -> bool:
        """Reports about a superseded payment session must not move the order."""
        return not order.payment_reference or order.payment_reference == report.external_ref

    def apply_details(self, order, report: ExternalReport) -> None:
        order.record_payment_details(
            payment_status=report.reported_status,
            payment_type=report.details.get("payment_type"),
            bank=report.details.get("bank"),
            masked_card=report.details.get("masked_card"),
            transaction_id=report.details.get("transaction_id"),
        )


class BiteshipTranslator:
    source = "biteship"
    signature_header = "x-biteship-signature"

    def verify(self, payload: dict, raw_body: bytes | None = None, signature: str | None = None) -> bool:
        if not signature:
            return accept_unsigned(self.source, shipment_id=payload.get("order_id"))
        return get_carrier().verify_webhook_signature(raw_body or b"", signature)

    def read(self, payload: dict) -> ExternalReport:
        reported = (payload.get("status") or "").lower()
        mapped = map_shipment_status(reported)
        shipping_status, target = mapped if mapped else (None, None)
        metadata = payload.get("metadata") or {}
        return ExternalReport(
            source=self.source,
            external_ref=str(payload.get("order_id") or payload.get("id") or ""),
            reported_status=reported,
            target=target,
            shipping_status=shipping_status,
            details={
                "order_id": metadata.get("order_id") or metadata.get("sikupi_order_id"),
                "reference_id": payload.get("reference_id"),
                "tracking_number": payload.get("waybill_id") or payload.get("courier_waybill_id"),
            },
        )

    def find_order(self, report: ExternalReport):
        order = _order_or_none(report.details.get("order_id"))
        if order is not None:
            return order

        for candidate in (report.details.get("reference_id"), report.external_ref):
            match = SHIPMENT_REFERENCE_PATTERN.match(candidate or "")
            if match:
                order = _order_or_none(match.group(1))
                if order is not None:
                    return order

        return _first_order_where(shipment_id=report.external_ref)

    def is_current(self, order, report: ExternalReport) -> bool:
        return True

    def apply_details(self, order, report: ExternalReport) -> None:
        if report.shipping_status is not None:
            order.record_shipping_progress(report.shipping_status, tracking_number=report.details.get("tracking_number"))
        elif report.details.get("tracking_number"):
            order.tracking_number = report.details["tracking_number"]


TRANSLATORS = {
    MidtransTranslator.source: MidtransTranslator(),
    BiteshipTranslator.source: BiteshipTranslator(),
}


def translator_for(source: str):
    try:
        return TRANSLATORS[source]
    except KeyError:
        raise ValueError(f"No translator for source: {source}") from None
