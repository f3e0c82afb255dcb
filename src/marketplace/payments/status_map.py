"""Midtrans transaction status → internal order status.

The gateway's vocabulary is treated as an external enum. Only this table
knows it; everything downstream sees ``OrderStatus`` or ``None`` (unmapped).
"""

from marketplace.ordering.order.order import OrderStatus

TRANSACTION_STATUS_MAP = {
    "capture": OrderStatus.PAID,
    "settlement": OrderStatus.PAID,
    "pending": OrderStatus.PENDING_PAYMENT,
    "deny": OrderStatus.CANCELLED,
    "cancel": OrderStatus.CANCELLED,
    "expire": OrderStatus.CANCELLED,
    "failure": OrderStatus.CANCELLED,
}

# A flagged transaction never counts as paid
_REJECTING_FRAUD_STATUSES = {"challenge", "deny"}


def map_transaction_status(transaction_status: str | None, fraud_status: str | None = None) -> OrderStatus | None:
    if fraud_status in _REJECTING_FRAUD_STATUSES:
        return OrderStatus.CANCELLED
    return TRANSACTION_STATUS_MAP.get((transaction_status or "").lower())
