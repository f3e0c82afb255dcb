"""Configurable fake payment gateway for development and testing.

Simulates Midtrans without network calls. It can be told to fail (to exercise
the retryable-error path), it remembers every call, and tests can set the
transaction status that ``get_status`` reports. Notifications are signed the
same way Midtrans signs them, with a fixed fake server key.
"""

from uuid import uuid4

from marketplace.exceptions import GatewayError
from marketplace.payments.gateway.midtrans_adapter import midtrans_signature, status_from_payload
from marketplace.payments.gateway.port import PaymentGateway, SessionResult, TransactionStatus

FAKE_SERVER_KEY = "fake-server-key"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self, server_key: str = FAKE_SERVER_KEY) -> None:
        self.server_key = server_key
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.transactions: dict[str, dict] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_session(
        self,
        payment_reference: str,
        gross_amount: int,
        item_details: list[dict],
        customer_details: dict,
        custom_fields: dict,
        expiry_hours: int,
    ) -> SessionResult:
        self.calls.append(
            {
                "method": "create_session",
                "payment_reference": payment_reference,
                "gross_amount": gross_amount,
                "item_details": item_details,
                "customer_details": customer_details,
                "custom_fields": custom_fields,
                "expiry_hours": expiry_hours,
            }
        )
        if not self.should_succeed:
            raise GatewayError(self.name, self.failure_reason)

        self.transactions[payment_reference] = {
            "order_id": payment_reference,
            "transaction_status": "pending",
            "status_code": "201",
            "gross_amount": f"{gross_amount}.00",
            **custom_fields,
        }
        token = f"fake-snap-{uuid4().hex[:16]}"
        return SessionResult(
            token=token,
            redirect_url=f"https://app.sandbox.midtrans.com/snap/v2/vtweb/{token}",
        )

    def set_transaction_status(self, payment_reference: str, transaction_status: str, **extra) -> dict:
        """Make ``get_status`` report ``transaction_status`` for this reference. Returns the signed payload."""
        status_code = {"settlement": "200", "capture": "200", "pending": "201"}.get(transaction_status, "202")
        payload = {
            **self.transactions.get(payment_reference, {"order_id": payment_reference, "gross_amount": "0.00"}),
            "transaction_status": transaction_status,
            "status_code": status_code,
            "transaction_id": extra.pop("transaction_id", f"fake-txn-{uuid4().hex[:12]}"),
            **extra,
        }
        payload["signature_key"] = self.sign(payload)
        self.transactions[payment_reference] = payload
        return payload

    def sign(self, payload: dict) -> str:
        return midtrans_signature(
            str(payload.get("order_id", "")),
            str(payload.get("status_code", "")),
            str(payload.get("gross_amount", "")),
            self.server_key,
        )

    def get_status(self, payment_reference: str) -> TransactionStatus:
        self.calls.append({"method": "get_status", "payment_reference": payment_reference})
        if not self.should_succeed:
            raise GatewayError(self.name, self.failure_reason)

        payload = self.transactions.get(payment_reference)
        if payload is None:
            raise GatewayError(self.name, "Transaction doesn't exist", status_code=404)

        return status_from_payload(payload)

    def verify_signature(self, payload: dict) -> bool:
        return payload.get("signature_key") == self.sign(payload)
