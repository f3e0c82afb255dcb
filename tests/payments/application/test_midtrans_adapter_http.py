import json

import httpx
import pytest

from marketplace.exceptions import GatewayError
from marketplace.payments.gateway.midtrans_adapter import (
    SANDBOX_CORE_URL,
    SANDBOX_SNAP_URL,
    MidtransGateway,
    midtrans_signature,
)

SERVER_KEY = "SB-Mid-server-test"


def _gateway(handler):
    transport = httpx.MockTransport(handler)
    return MidtransGateway(
        server_key=SERVER_KEY,
        snap_client=httpx.Client(base_url=SANDBOX_SNAP_URL, transport=transport),
        core_client=httpx.Client(base_url=SANDBOX_CORE_URL, transport=transport),
    )


def _session_args(**overrides):
    args = {
        "payment_reference": "SIKUPI-ORD-1700000000000-042",
        "gross_amount": 65000,
        "item_details": [{"id": "p-1", "price": 65000, "quantity": 1, "name": "Arabica (2.5 kg)"}],
        "customer_details": {"first_name": "Cut"},
        "custom_fields": {"custom_field1": "buyer-1", "custom_field2": "order-1"},
        "expiry_hours": 24,
    }
    args.update(overrides)
    return args


class TestCreateSession:
    def test_posts_snap_transaction(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"token": "snap-token", "redirect_url": "https://pay/snap-token"})

        result = _gateway(handler).create_session(**_session_args())

        assert result.token == "snap-token"
        assert result.redirect_url == "https://pay/snap-token"
        assert seen["path"] == "/snap/v1/transactions"
        assert seen["body"]["transaction_details"] == {
            "order_id": "SIKUPI-ORD-1700000000000-042",
            "gross_amount": 65000,
        }
        assert seen["body"]["custom_field2"] == "order-1"
        assert seen["body"]["expiry"] == {"unit": "hours", "duration": 24}

    def test_http_error_is_gateway_error(self):
        gateway = _gateway(lambda request: httpx.Response(500, json={"error_messages": ["boom"]}))
        with pytest.raises(GatewayError) as exc:
            gateway.create_session(**_session_args())
        assert exc.value.status_code == 500

    def test_timeout_is_gateway_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(GatewayError) as exc:
            _gateway(handler).create_session(**_session_args())
        assert exc.value.message == "Request timed out"

    def test_missing_token_is_gateway_error(self):
        gateway = _gateway(lambda request: httpx.Response(201, json={"redirect_url": "x"}))
        with pytest.raises(GatewayError):
            gateway.create_session(**_session_args())

    def test_non_json_is_gateway_error(self):
        gateway = _gateway(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(GatewayError):
            gateway.create_session(**_session_args())


class TestGetStatus:
    def test_reads_status(self):
        def handler(request):
            assert request.url.path == "/v2/SIKUPI-ORD-1-001/status"
            return httpx.Response(
                200,
                json={
                    "order_id": "SIKUPI-ORD-1-001",
                    "transaction_status": "settlement",
                    "status_code": "200",
                    "gross_amount": "65000.00",
                    "payment_type": "bank_transfer",
                    "va_numbers": [{"bank": "bca", "va_number": "123"}],
                },
            )

        status = _gateway(handler).get_status("SIKUPI-ORD-1-001")
        assert status.transaction_status == "settlement"
        assert status.payment_type == "bank_transfer"
        assert status.raw["bank"] == "bca"

    def test_unknown_transaction(self):
        gateway = _gateway(
            lambda request: httpx.Response(200, json={"status_code": "404", "status_message": "Transaction doesn't exist."})
        )
        with pytest.raises(GatewayError, match="Transaction doesn't exist"):
            gateway.get_status("SIKUPI-ORD-1-001")


class TestSignature:
    def _payload(self):
        payload = {"order_id": "SIKUPI-ORD-1-001", "status_code": "200", "gross_amount": "65000.00"}
        payload["signature_key"] = midtrans_signature("SIKUPI-ORD-1-001", "200", "65000.00", SERVER_KEY)
        return payload

    def test_valid(self):
        assert _gateway(lambda r: httpx.Response(200)).verify_signature(self._payload())

    def test_tampered_amount(self):
        payload = self._payload()
        payload["gross_amount"] = "1.00"
        assert not _gateway(lambda r: httpx.Response(200)).verify_signature(payload)

    def test_missing_signature(self):
        payload = self._payload()
        del payload["signature_key"]
        assert not _gateway(lambda r: httpx.Response(200)).verify_signature(payload)


def test_requires_server_key():
    with pytest.raises(ValueError):
        MidtransGateway(server_key="")
