"""Midtrans payment gateway adapter.

Snap opens the hosted payment page (``POST /snap/v1/transactions``); the Core
API answers status queries (``GET /v2/{order_id}/status``). Both use HTTP
Basic auth with the server key as username and an empty password.

Notifications are signed with
``sha512(order_id + status_code + gross_amount + server_key)``.
"""

import hashlib
import hmac

import httpx
import structlog

from marketplace.exceptions import GatewayError
from marketplace.payments.gateway.port import PaymentGateway, SessionResult, TransactionStatus

logger = structlog.get_logger(__name__)

SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com"
PRODUCTION_SNAP_URL = "https://app.midtrans.com"
SANDBOX_CORE_URL = "https://api.sandbox.midtrans.com"
PRODUCTION_CORE_URL = "https://api.midtrans.com"


def midtrans_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def status_from_payload(payload: dict) -> TransactionStatus:
    """Read a status response or notification body into a TransactionStatus."""
    va_numbers = payload.get("va_numbers") or []
    return TransactionStatus(
        payment_reference=payload.get("order_id", ""),
        transaction_status=payload.get("transaction_status", ""),
        fraud_status=payload.get("fraud_status"),
        status_code=payload.get("status_code"),
        gross_amount=payload.get("gross_amount"),
        payment_type=payload.get("payment_type"),
        transaction_id=payload.get("transaction_id"),
        raw=dict(payload, bank=payload.get("bank") or (va_numbers[0].get("bank") if va_numbers else None)),
    )


class MidtransGateway(PaymentGateway):
    name = "midtrans"

    def __init__(
        self,
        server_key: str,
        is_production: bool = False,
        timeout: float = 10.0,
        snap_client: httpx.Client | None = None,
        core_client: httpx.Client | None = None,
    ) -> None:
        if not server_key:
            raise ValueError("MidtransGateway requires a server key")
        self.server_key = server_key
        self.is_production = is_production

        timeout_config = httpx.Timeout(timeout, connect=5.0)
        auth = (server_key, "")
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        self.snap = snap_client or httpx.Client(
            base_url=PRODUCTION_SNAP_URL if is_production else SANDBOX_SNAP_URL,
            auth=auth,
            headers=headers,
            timeout=timeout_config,
        )
        self.core = core_client or httpx.Client(
            base_url=PRODUCTION_CORE_URL if is_production else SANDBOX_CORE_URL,
            auth=auth,
            headers=headers,
            timeout=timeout_config,
        )

    def close(self) -> None:
        self.snap.close()
        self.core.close()

    def _call(self, client: httpx.Client, method: str, url: str, reference: str, **kwargs) -> dict:
        try:
            response = client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as exc:
            logger.error("Midtrans timeout", payment_reference=reference, url=url)
            raise GatewayError(self.name, "Request timed out") from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Midtrans HTTP error",
                payment_reference=reference,
                status_code=exc.response.status_code,
                body=exc.response.text[:500],
            )
            raise GatewayError(self.name, f"HTTP {exc.response.status_code}", exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.error("Midtrans unreachable", payment_reference=reference, error=str(exc))
            raise GatewayError(self.name, "Gateway unreachable") from exc
        except ValueError as exc:
            raise GatewayError(self.name, "Malformed gateway response") from exc

    def create_session(
        self,
        payment_reference: str,
        gross_amount: int,
        item_details: list[dict],
        customer_details: dict,
        custom_fields: dict,
        expiry_hours: int,
    ) -> SessionResult:
        body = {
            "transaction_details": {"order_id": payment_reference, "gross_amount": gross_amount},
            "item_details": item_details,
            "customer_details": customer_details,
            "credit_card": {"secure": True},
            "expiry": {"unit": "hours", "duration": expiry_hours},
            **custom_fields,
        }
        data = self._call(self.snap, "POST", "/snap/v1/transactions", payment_reference, json=body)
        token = data.get("token")
        if not token:
            raise GatewayError(self.name, "Response carried no token")
        return SessionResult(token=token, redirect_url=data.get("redirect_url"))

    def get_status(self, payment_reference: str) -> TransactionStatus:
        data = self._call(self.core, "GET", f"/v2/{payment_reference}/status", payment_reference)
        if "transaction_status" not in data:
            raise GatewayError(self.name, data.get("status_message") or "No transaction status in response")
        return status_from_payload(data)

    def verify_signature(self, payload: dict) -> bool:
        signature = payload.get("signature_key") or ""
        expected = midtrans_signature(
            str(payload.get("order_id", "")),
            str(payload.get("status_code", "")),
            str(payload.get("gross_amount", "")),
            self.server_key,
        )
        return hmac.compare_digest(signature, expected)
