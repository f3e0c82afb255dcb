"""Biteship carrier adapter.

Biteship aggregates the Indonesian couriers (JNE, J&T, SiCepat, POS, TIKI,
AnterAja) behind one API: rate quotes, order booking and tracking. Requests
authenticate with the raw API key in the ``Authorization`` header. Webhooks
carry an HMAC-SHA256 of the body in ``X-Biteship-Signature``.
"""

import hashlib
import hmac

import httpx
import structlog

from marketplace.exceptions import GatewayError
from marketplace.fulfillment.carrier.port import CarrierPort, RateQuote, ShipmentBooking

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.biteship.com/v1"


def biteship_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class BiteshipCarrier(CarrierPort):
    name = "biteship"

    def __init__(
        self,
        api_key: str,
        webhook_secret: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("BiteshipCarrier requires an API key")
        self.webhook_secret = webhook_secret
        self.client = client or httpx.Client(
            base_url=base_url,
            headers={"Authorization": api_key, "Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=5.0),
        )

    def close(self) -> None:
        self.client.close()

    def _call(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            logger.error("Biteship timeout", url=url)
            raise GatewayError(self.name, "Request timed out") from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Biteship HTTP error",
                url=url,
                status_code=exc.response.status_code,
                body=exc.response.text[:500],
            )
            raise GatewayError(self.name, f"HTTP {exc.response.status_code}", exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.error("Biteship unreachable", url=url, error=str(exc))
            raise GatewayError(self.name, "Gateway unreachable") from exc
        except ValueError as exc:
            raise GatewayError(self.name, "Malformed gateway response") from exc

        if data.get("success") is False:
            raise GatewayError(self.name, data.get("error") or data.get("message") or "Request rejected")
        return data

    def get_rates(self, origin: dict, destination: dict, items: list[dict], couriers: str) -> list[RateQuote]:
        body = {
            "origin_postal_code": origin.get("postal_code"),
            "destination_postal_code": destination.get("postal_code"),
            "couriers": couriers,
            "items": items,
        }
        if origin.get("area_id"):
            body["origin_area_id"] = origin["area_id"]
        if destination.get("area_id"):
            body["destination_area_id"] = destination["area_id"]

        data = self._call("POST", "/rates/couriers", json=body)
        return [
            RateQuote(
                courier_company=p.get("courier_code", ""),
                courier_service=p.get("courier_service_code", ""),
                courier_name=p.get("courier_name", ""),
                service_name=p.get("courier_service_name", ""),
                price=int(p.get("price", 0)),
                duration=p.get("duration"),
                description=p.get("description"),
            )
            for p in data.get("pricing", [])
        ]

    def create_shipment(self, request: dict) -> ShipmentBooking:
        data = self._call("POST", "/orders", json=request)
        if not data.get("id"):
            raise GatewayError(self.name, "Response carried no shipment id")
        courier = data.get("courier") or {}
        return ShipmentBooking(
            shipment_id=data["id"],
            reference_id=data.get("reference_id") or request.get("reference_id", ""),
            tracking_number=courier.get("waybill_id") or data.get("waybill_id"),
            status=data.get("status"),
            price=data.get("price"),
            raw=data,
        )

    def get_tracking(self, shipment_id: str) -> dict:
        data = self._call("GET", f"/trackings/{shipment_id}")
        return {
            "status": data.get("status"),
            "tracking_number": data.get("waybill_id"),
            "link": data.get("link"),
            "history": data.get("history", []),
        }

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not self.webhook_secret:
            logger.warning("Biteship webhook secret not configured; accepting unverified payload")
            return True
        return hmac.compare_digest(signature or "", biteship_signature(payload, self.webhook_secret))
