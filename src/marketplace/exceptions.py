"""Domain exceptions for the marketplace.

Validation failures extend Protean's ``ValidationError`` so they carry a
``messages`` dict and map to 400 like any other validation error. Conflicts,
gateway failures and signature failures get their own HTTP codes in
``marketplace.api.errors``.
"""

from protean.exceptions import ValidationError


class OutOfStock(ValidationError):
    """Requested quantity exceeds what the Stock Ledger can supply."""

    def __init__(self, product_id, requested, available):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            {"quantity": [f"Insufficient stock. Available: {available:g}, Requested: {requested:g}"]}
        )


class CheckoutRejected(ValidationError):
    """The cart could not be turned into an order. Nothing was persisted."""

    def __init__(self, violations, messages=None):
        self.violations = list(violations)
        super().__init__(messages or {"cart": [v.describe() for v in self.violations]})


class IllegalTransition(ValidationError):
    """The order state machine has no edge from the current status to the target."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})


class ConflictError(Exception):
    """The request clashes with the current state of the resource."""

    code = "conflict"

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class AlreadyShipped(ConflictError):
    code = "already_shipped"


class PaymentNotAllowed(ConflictError):
    code = "payment_not_allowed"


class PreconditionFailed(Exception):
    """Required order data (address, courier, status) is missing or wrong."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class GatewayError(Exception):
    """An external gateway failed or answered with something unusable.

    Always retryable from the local system's point of view: no local state is
    written before the external call succeeds.
    """

    retryable = True

    def __init__(self, gateway, message, status_code=None):
        self.gateway = gateway
        self.message = message
        self.status_code = status_code
        super().__init__(f"{gateway}: {message}")


class InvalidSignature(Exception):
    """A webhook payload failed signature verification."""

    def __init__(self, source):
        self.source = source
        super().__init__(f"Invalid {source} webhook signature")
