"""Payment gateway port (abstract interface).

Defines the contract that payment gateway adapters implement. Domain and
application code program against this port; MidtransGateway talks to the real
Snap/Core API and FakeGateway stands in for it in development and tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SessionResult:
    """A payment session opened at the gateway."""

    token: str
    redirect_url: str | None = None


@dataclass(frozen=True)
class TransactionStatus:
    """The gateway's view of one transaction, in its own vocabulary."""

    payment_reference: str
    transaction_status: str
    fraud_status: str | None = None
    status_code: str | None = None
    gross_amount: str | None = None
    payment_type: str | None = None
    transaction_id: str | None = None
    raw: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "payment"

    @abstractmethod
    def create_session(
        self,
        payment_reference: str,
        gross_amount: int,
        item_details: list[dict],
        customer_details: dict,
        custom_fields: dict,
        expiry_hours: int,
    ) -> SessionResult:
        """Open a payment session. Raises GatewayError on any failure."""
        ...

    @abstractmethod
    def get_status(self, payment_reference: str) -> TransactionStatus:
        """Query the current state of a transaction. Raises GatewayError on any failure."""
        ...

    @abstractmethod
    def verify_signature(self, payload: dict) -> bool:
        """Check the ``signature_key`` of a notification payload."""
        ...
