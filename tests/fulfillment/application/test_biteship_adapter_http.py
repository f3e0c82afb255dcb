import json

import httpx
import pytest

from marketplace.exceptions import GatewayError
from marketplace.fulfillment.carrier.biteship_adapter import DEFAULT_BASE_URL, BiteshipCarrier, biteship_signature


def _carrier(handler, webhook_secret="whsec"):
    client = httpx.Client(
        base_url=DEFAULT_BASE_URL,
        headers={"Authorization": "biteship-key"},
        transport=httpx.MockTransport(handler),
    )
    return BiteshipCarrier(api_key="biteship-key", webhook_secret=webhook_secret, client=client)


class TestRates:
    def test_posts_rates_request(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "pricing": [
                        {
                            "courier_code": "jne",
                            "courier_service_code": "reg",
                            "courier_name": "JNE",
                            "courier_service_name": "Reguler",
                            "price": 22000,
                            "duration": "2 - 3 days",
                        }
                    ],
                },
            )

        quotes = _carrier(handler).get_rates(
            {"postal_code": "23111"},
            {"postal_code": "23122", "area_id": "IDZ23122"},
            [{"name": "Arabica", "weight": 2500}],
            "jne",
        )

        assert seen["path"] == "/v1/rates/couriers"
        assert seen["auth"] == "biteship-key"
        assert seen["body"]["destination_area_id"] == "IDZ23122"
        assert "origin_area_id" not in seen["body"]
        assert quotes[0].courier_company == "jne"
        assert quotes[0].price == 22000

    def test_unsuccessful_body_is_gateway_error(self):
        carrier = _carrier(lambda r: httpx.Response(200, json={"success": False, "error": "No courier available"}))
        with pytest.raises(GatewayError, match="No courier available"):
            carrier.get_rates({}, {}, [], "jne")


class TestCreateShipment:
    def test_books_order(self):
        def handler(request):
            assert request.url.path == "/v1/orders"
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "id": "bs-123",
                    "reference_id": body["reference_id"],
                    "status": "confirmed",
                    "price": 22000,
                    "courier": {"waybill_id": "JNE0001"},
                },
            )

        booking = _carrier(handler).create_shipment({"reference_id": "SIKUPI-SHIP-1-001-o"})
        assert booking.shipment_id == "bs-123"
        assert booking.tracking_number == "JNE0001"
        assert booking.reference_id == "SIKUPI-SHIP-1-001-o"

    def test_missing_id(self):
        carrier = _carrier(lambda r: httpx.Response(200, json={"success": True}))
        with pytest.raises(GatewayError):
            carrier.create_shipment({})

    def test_http_error(self):
        carrier = _carrier(lambda r: httpx.Response(400, json={"success": False, "error": "bad area"}))
        with pytest.raises(GatewayError) as exc:
            carrier.create_shipment({})
        assert exc.value.status_code == 400

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GatewayError, match="unreachable"):
            _carrier(handler).create_shipment({})


class TestTracking:
    def test_reads_tracking(self):
        def handler(request):
            assert request.url.path == "/v1/trackings/bs-123"
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "status": "dropping_off",
                    "waybill_id": "JNE0001",
                    "link": "https://track/JNE0001",
                    "history": [{"status": "picked", "note": "Picked up"}],
                },
            )

        tracking = _carrier(handler).get_tracking("bs-123")
        assert tracking["status"] == "dropping_off"
        assert tracking["history"][0]["status"] == "picked"


class TestWebhookSignature:
    def test_valid(self):
        body = b'{"order_id":"bs-123","status":"delivered"}'
        assert _carrier(lambda r: httpx.Response(200)).verify_webhook_signature(body, biteship_signature(body, "whsec"))

    def test_invalid(self):
        body = b'{"order_id":"bs-123","status":"delivered"}'
        assert not _carrier(lambda r: httpx.Response(200)).verify_webhook_signature(body, "deadbeef")

    def test_no_secret_configured_accepts(self):
        carrier = _carrier(lambda r: httpx.Response(200), webhook_secret=None)
        assert carrier.verify_webhook_signature(b"{}", "anything")


def test_requires_api_key():
    with pytest.raises(ValueError):
        BiteshipCarrier(api_key="")
