"""Integration tests for admin order actions and payment retry via TestClient."""

import inspect

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers

from marketplace.api import register_error_handlers
from marketplace.inventory.product import Product
from marketplace.ordering.api import order_router

ADMIN = {"Authorization": "Bearer admin-token-ops"}
BUYER = {"Authorization": "Bearer test-token-buyer-1"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    register_exception_handlers(app)
    register_error_handlers(app)
    return TestClient(app)


class TestPackAPI:
    def test_pack_paid_order(self, client, paid_order):
        order_id, _ = paid_order()
        response = client.put(f"/orders/{order_id}/pack", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["status"] == "packed"

    def test_pack_unpaid_is_409(self, client, place_order):
        order_id, _ = place_order()
        response = client.put(f"/orders/{order_id}/pack", headers=ADMIN)
        assert response.status_code == 409
        assert response.json()["current_status"] == "new"

    def test_buyer_cannot_pack(self, client, paid_order):
        order_id, _ = paid_order()
        assert client.put(f"/orders/{order_id}/pack", headers=BUYER).status_code == 403


class TestCancelAPI:
    def test_cancel_restores_stock(self, client, place_order):
        order_id, product_id = place_order(quantity=2, stock_qty=6)
        response = client.put(f"/orders/{order_id}/cancel", json={"reason": "Duplicate order"}, headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert current_domain.repository_for(Product).get(product_id).stock_qty == 6

    def test_unknown_order_404(self, client):
        assert client.put("/orders/missing/cancel", json={}, headers=ADMIN).status_code == 404


class TestRetryPaymentAPI:
    def test_retry_returns_same_session(self, client, place_order, fake_gateway):
        order_id, _ = place_order()
        first = client.post(f"/orders/{order_id}/retry-payment", headers=BUYER)
        second = client.post(f"/orders/{order_id}/retry-payment", headers=BUYER)

        assert first.status_code == 200
        assert second.json()["token"] == first.json()["token"]
        assert second.json()["reused"] is True
        assert len([c for c in fake_gateway.calls if c["method"] == "create_session"]) == 1

    def test_gateway_down_is_502_and_order_untouched(self, client, place_order, fake_gateway):
        order_id, _ = place_order()
        fake_gateway.configure(should_succeed=False)

        response = client.post(f"/orders/{order_id}/retry-payment", headers=BUYER)
        assert response.status_code == 502
        assert response.json()["retryable"] is True

        order = client.get(f"/orders/{order_id}", headers=BUYER).json()
        assert order["status"] == "new"
        assert order["payment_reference"] is None

    def test_paid_order_is_409(self, client, paid_order):
        order_id, _ = paid_order()
        response = client.post(f"/orders/{order_id}/retry-payment", headers=BUYER)
        assert response.status_code == 409
        assert response.json()["error"] == "payment_not_allowed"


def test_retry_payment_runs_in_threadpool():
    endpoints = {route.path: route.endpoint for route in order_router.routes}
    assert not inspect.iscoroutinefunction(endpoints["/orders/{order_id}/retry-payment"])
