"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock shipment ids, waybills and tracking history. Configurable
success/failure behavior for integration testing. Webhooks are signed with a
fixed secret using the same HMAC scheme as Biteship.
"""

from uuid import uuid4

from marketplace.exceptions import GatewayError
from marketplace.fulfillment.carrier.biteship_adapter import biteship_signature
from marketplace.fulfillment.carrier.port import CarrierPort, RateQuote, ShipmentBooking

FAKE_WEBHOOK_SECRET = "fake-webhook-secret"

# (company, service, price per started kilogram, duration)
_FAKE_RATES = [
    ("jne", "reg", 11000, "2 - 3 days"),
    ("jne", "yes", 19000, "1 days"),
    ("sicepat", "reg", 10000, "2 - 3 days"),
    ("jnt", "ez", 12000, "2 - 3 days"),
    ("anteraja", "reg", 9500, "3 - 4 days"),
]


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    name = "fake"

    def __init__(self, webhook_secret: str = FAKE_WEBHOOK_SECRET):
        self.webhook_secret = webhook_secret
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.calls: list[dict] = []
        self.shipments: dict[str, dict] = {}

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def get_rates(self, origin: dict, destination: dict, items: list[dict], couriers: str) -> list[RateQuote]:
        self.calls.append({"method": "get_rates", "destination": destination, "items": items, "couriers": couriers})
        if not self.should_succeed:
            raise GatewayError(self.name, self.failure_reason)

        wanted = set(couriers.split(","))
        grams = sum(i.get("weight", 0) * i.get("quantity", 1) for i in items)
        started_kg = max(1, -(-grams // 1000))
        return [
            RateQuote(
                courier_company=company,
                courier_service=service,
                courier_name=company.upper(),
                service_name=service.upper(),
                price=per_kg * started_kg,
                duration=duration,
            )
            for company, service, per_kg, duration in _FAKE_RATES
            if company in wanted
        ]

    def create_shipment(self, request: dict) -> ShipmentBooking:
        self.calls.append({"method": "create_shipment", "request": request})
        if not self.should_succeed:
            raise GatewayError(self.name, self.failure_reason)

        shipment_id = f"fake-ship-{uuid4().hex[:10]}"
        waybill = f"FAKE{uuid4().hex[:10].upper()}"
        self.shipments[shipment_id] = {"status": "confirmed", "waybill_id": waybill, "history": []}
        return ShipmentBooking(
            shipment_id=shipment_id,
            reference_id=request.get("reference_id", ""),
            tracking_number=waybill,
            status="confirmed",
            price=15000,
        )

    def get_tracking(self, shipment_id: str) -> dict:
        if not self.should_succeed:
            raise GatewayError(self.name, self.failure_reason)
        shipment = self.shipments.get(shipment_id)
        if shipment is None:
            raise GatewayError(self.name, "Shipment not found", status_code=404)
        return {
            "status": shipment["status"],
            "tracking_number": shipment["waybill_id"],
            "link": None,
            "history": list(shipment["history"]),
        }

    def sign(self, payload: bytes) -> str:
        return biteship_signature(payload, self.webhook_secret)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        return signature == self.sign(payload)
