"""Carrier adapter abstraction — pluggable shipping aggregator integration."""

import os

_carrier_instance = None


def get_carrier():
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. Set CARRIER_ADAPTER=biteship (with
    BITESHIP_API_KEY) to talk to Biteship.
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from marketplace.fulfillment.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "biteship":
            from marketplace.fulfillment.carrier.biteship_adapter import DEFAULT_BASE_URL, BiteshipCarrier

            _carrier_instance = BiteshipCarrier(
                api_key=os.environ.get("BITESHIP_API_KEY", ""),
                webhook_secret=os.environ.get("BITESHIP_WEBHOOK_SECRET"),
                base_url=os.environ.get("BITESHIP_BASE_URL", DEFAULT_BASE_URL),
                timeout=float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "10")),
            )
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier) -> None:
    """Override the active carrier (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier():
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
