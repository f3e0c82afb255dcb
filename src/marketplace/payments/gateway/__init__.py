"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (default)
- MidtransGateway when PAYMENT_GATEWAY=midtrans
"""

import os

from marketplace.payments.gateway.fake_adapter import FakeGateway
from marketplace.payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    adapter = os.environ.get("PAYMENT_GATEWAY", "fake")
    if adapter == "fake":
        return FakeGateway()
    if adapter == "midtrans":
        from marketplace.payments.gateway.midtrans_adapter import MidtransGateway

        return MidtransGateway(
            server_key=os.environ.get("MIDTRANS_SERVER_KEY", ""),
            is_production=os.environ.get("MIDTRANS_IS_PRODUCTION", "false").lower() == "true",
            timeout=float(os.environ.get("GATEWAY_TIMEOUT_SECONDS", "10")),
        )
    raise ValueError(f"Unknown payment gateway: {adapter}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from PAYMENT_GATEWAY on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
