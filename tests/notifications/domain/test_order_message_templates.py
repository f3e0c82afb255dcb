"""Tests for order notification templates and the notification aggregate."""

import pytest

from marketplace.notifications.helpers import STATUS_TEMPLATES
from marketplace.notifications.notification import Notification, NotificationType
from marketplace.notifications.templates import TEMPLATE_REGISTRY, format_idr, get_template

CONTEXT = {
    "order_id": "0b6a9f3e-1c2d-4e5f-8a9b-0c1d2e3f4a5b",
    "total_idr": 65000,
    "courier_company": "jne",
    "tracking_number": "JNE0001",
}


# ---------------------------------------------------------------
# Template registry
# ---------------------------------------------------------------
class TestTemplateRegistry:
    def test_every_status_template_is_registered(self):
        for key in STATUS_TEMPLATES.values():
            assert key in TEMPLATE_REGISTRY

    def test_unknown_key_raises(self):
        with pytest.raises(ValueError, match="No template registered"):
            get_template("refund_issued")


# ---------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------
class TestRendering:
    def test_rupiah_format(self):
        assert format_idr(150000) == "Rp 150.000"
        assert format_idr(None) == "Rp 0"

    def test_payment_confirmed(self):
        rendered = get_template("payment_confirmed").render(CONTEXT)
        assert rendered["title"] == "Payment Confirmed"
        assert "Rp 65.000" in rendered["message"]
        assert "#0b6a9f3e" in rendered["message"]

    def test_shipped_mentions_courier_and_tracking(self):
        rendered = get_template("order_shipped").render(CONTEXT)
        assert "JNE" in rendered["message"]
        assert "JNE0001" in rendered["message"]

    def test_cancelled_with_reason(self):
        rendered = get_template("order_cancelled").render({**CONTEXT, "reason": "midtrans reported expire"})
        assert rendered["message"].endswith("Reason: midtrans reported expire.")

    def test_missing_context_still_renders(self):
        rendered = get_template("order_shipped").render({})
        assert "N/A" in rendered["message"]

    def test_template_types(self):
        assert get_template("payment_confirmed").notification_type == NotificationType.PAYMENT_CONFIRMED.value
        assert get_template("order_shipped").notification_type == NotificationType.SHIPMENT_READY.value


# ---------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------
class TestNotificationAggregate:
    def _notification(self):
        return Notification.create(
            user_id="buyer-1",
            notification_type="order_update",
            title="Order Packed",
            message="Order #0b6a9f3e is packed.",
            data={"order_id": "0b6a9f3e"},
        )

    def test_created_unread(self):
        notification = self._notification()
        assert notification.read is False
        assert notification.payload == {"order_id": "0b6a9f3e"}
        assert notification.icon == "📦"

    def test_mark_read_once(self):
        notification = self._notification()
        assert notification.mark_read() is True
        first_read_at = notification.read_at
        assert notification.mark_read() is False
        assert notification.read_at == first_read_at

    def test_to_dict(self):
        body = self._notification().to_dict()
        assert body["type"] == "order_update"
        assert body["data"] == {"order_id": "0b6a9f3e"}
        assert body["read"] is False

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            Notification.create(user_id="u", notification_type="email_blast", title="t", message="m")
