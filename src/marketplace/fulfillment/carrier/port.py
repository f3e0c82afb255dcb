"""Carrier port — abstract interface for the shipping aggregator.

All carrier adapters implement this interface. The domain code programs
against the port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RateQuote:
    courier_company: str
    courier_service: str
    courier_name: str
    service_name: str
    price: int
    duration: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ShipmentBooking:
    """What the aggregator returns for a booked shipment."""

    shipment_id: str
    reference_id: str
    tracking_number: str | None = None
    status: str | None = None
    price: int | None = None
    raw: dict = field(default_factory=dict)


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    name = "carrier"

    @abstractmethod
    def get_rates(self, origin: dict, destination: dict, items: list[dict], couriers: str) -> list[RateQuote]:
        """Quote every requested courier for the parcel. Raises GatewayError on failure."""
        ...

    @abstractmethod
    def create_shipment(self, request: dict) -> ShipmentBooking:
        """Book a shipment. ``request`` is the aggregator order body. Raises GatewayError on failure."""
        ...

    @abstractmethod
    def get_tracking(self, shipment_id: str) -> dict:
        """Current tracking status and history for a shipment.

        Returns:
            dict with keys: status, tracking_number, history (list of {status, note, updated_at})
        """
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify that a webhook callback is authentic."""
        ...
