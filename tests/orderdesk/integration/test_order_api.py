"""Integration tests for OrderDesk API endpoints via TestClient."""

import asyncio
import threading

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from orderdesk.api import order_router, provider_router, register_error_handlers
from orderdesk.gateway import set_payment_provider
from orderdesk.gateway.fake_adapter import FakePaymentProvider

ITEMS = [
    {"product_id": "prod-001", "product_name": "Linen Shirt", "quantity": 2, "unit_price": 60.0},
    {"product_id": "prod-002", "product_name": "Canvas Tote", "quantity": 4, "unit_price": 20.0},
]
TRACKING = {"tracking_number": "TRK1", "tracking_url": "https://t/TRK1"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(provider_router)
    register_error_handlers(app)
    return TestClient(app)


def _place_order(client, **overrides):
    payload = {"customer_id": "cust-001", "items": ITEMS, "total_amount": 200.0}
    payload.update(overrides)
    response = client.post("/orders", json=payload)
    assert response.status_code == 201
    return response.json()["order_id"]


def _set_status(client, order_id, new_status, **extra):
    return client.put(f"/orders/{order_id}/status", json={"new_status": new_status, **extra})


class TestPlaceOrderAPI:
    def test_place_returns_201(self, client):
        response = client.post("/orders", json={"items": ITEMS})
        assert response.status_code == 201
        assert "order_id" in response.json()

    def test_place_without_items_returns_422(self, client):
        response = client.post("/orders", json={"items": []})
        assert response.status_code == 422

    def test_get_order(self, client):
        order_id = _place_order(client, customer_email="ada@example.com")

        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["order_id"] == order_id
        assert body["status"] == "pending"
        assert body["total_amount"] == 200.0
        assert body["refundable_amount"] == 200.0
        assert body["refund_status"] == "none"
        assert len(body["items"]) == 2
        assert body["status_history"][0]["notes"] == "Order placed"

    def test_get_unknown_order_returns_404(self, client):
        response = client.get("/orders/does-not-exist")
        assert response.status_code == 404
        assert response.json()["kind"] == "OrderNotFound"


class TestStatusAPI:
    def test_valid_transition(self, client):
        order_id = _place_order(client)

        response = _set_status(client, order_id, "processing", changed_by="admin-001")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Order status updated to processing"
        assert body["previous_status"] == "pending"
        assert body["order"]["status"] == "processing"
        assert body["order"]["status_history"][-1]["changed_by"] == "admin-001"

    def test_ship_without_tracking_returns_400(self, client):
        order_id = _place_order(client)
        _set_status(client, order_id, "processing")

        response = _set_status(client, order_id, "shipped")

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "MissingTrackingInfo"
        assert body["missing"] == ["tracking_number", "tracking_url"]
        assert client.get(f"/orders/{order_id}").json()["status"] == "processing"

    def test_ship_with_tracking(self, client):
        order_id = _place_order(client)
        _set_status(client, order_id, "processing")

        response = _set_status(client, order_id, "shipped", **TRACKING)

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["tracking_number"] == "TRK1"
        assert order["tracking_url"] == "https://t/TRK1"

    def test_ship_with_long_tracking_url(self, client):
        order_id = _place_order(client)
        _set_status(client, order_id, "processing")
        tracking_url = "https://track.example.com/" + "a" * 274

        response = _set_status(client, order_id, "shipped", tracking_number="TRK1", tracking_url=tracking_url)

        assert response.status_code == 200
        assert response.json()["order"]["tracking_url"] == tracking_url

    def test_oversized_tracking_url_returns_kind(self, client):
        order_id = _place_order(client)
        _set_status(client, order_id, "processing")

        response = _set_status(client, order_id, "shipped", tracking_number="TRK1", tracking_url="u" * 501)

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidRequest"
        assert "tracking_url" in response.json()["errors"]
        assert client.get(f"/orders/{order_id}").json()["status"] == "processing"

    def test_backward_transition_returns_400(self, client):
        order_id = _place_order(client)
        _set_status(client, order_id, "processing")
        _set_status(client, order_id, "shipped", **TRACKING)
        _set_status(client, order_id, "delivered")

        response = _set_status(client, order_id, "pending")

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "InvalidTransition"
        assert body["current_status"] == "delivered"
        assert body["requested_status"] == "pending"

    def test_unknown_order_returns_404(self, client):
        response = _set_status(client, "does-not-exist", "processing")
        assert response.status_code == 404

    def test_cancel_reports_refund_and_restock(self, client, inventory_adjuster):
        order_id = _place_order(client)

        response = _set_status(client, order_id, "cancelled")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["refund"]["status"] == "succeeded"
        assert body["refund"]["amount"] == 200.0
        assert sorted(body["restocked"]) == ["prod-001", "prod-002"]
        assert body["order"]["total_refunded_amount"] == 200.0
        assert body["order"]["refund_status"] == "fully_refunded"

    def test_cancel_with_declined_refund_still_cancels(self, client, payment_provider):
        payment_provider.configure(should_succeed=False, failure_reason="Card expired")
        order_id = _place_order(client)

        response = _set_status(client, order_id, "cancelled")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["refund"]["status"] == "failed"
        assert body["refund"]["failure_reason"] == "Card expired"
        assert body["order"]["total_refunded_amount"] == 0.0


class TestRefundAPI:
    def test_partial_refund(self, client):
        order_id = _place_order(client, total_amount=100.0)

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 30, "reason": "damaged"})

        assert response.status_code == 200
        body = response.json()
        assert body["refund"]["status"] == "succeeded"
        assert body["order"]["total_refunded_amount"] == 30.0
        assert body["order"]["refundable_amount"] == 70.0

    def test_exceeding_refund_returns_400_with_max(self, client):
        order_id = _place_order(client, total_amount=100.0)
        client.post(f"/orders/{order_id}/refunds", json={"amount": 30, "reason": "damaged"})

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 80, "reason": "extra"})

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "AmountExceedsRefundable"
        assert body["max_refundable"] == 70.0
        assert body["message"] == "Refund amount (80.00) exceeds maximum refundable amount (70.00)"

    @pytest.mark.parametrize("amount", [None, 0, -10, "abc", ""])
    def test_invalid_amount_returns_400(self, client, amount):
        order_id = _place_order(client)

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": amount, "reason": "damaged"})

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidAmount"

    def test_long_numeric_amount_is_judged_by_the_ledger(self, client):
        order_id = _place_order(client, total_amount=100.0)

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": "1" * 56, "reason": "damaged"})

        assert response.status_code == 400
        assert response.json()["kind"] == "AmountExceedsRefundable"

    def test_zero_padded_amount_accepted(self, client):
        order_id = _place_order(client, total_amount=100.0)
        amount = "0" * 52 + "12.5"

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": amount, "reason": "damaged"})

        assert response.status_code == 200
        assert response.json()["order"]["total_refunded_amount"] == 12.5

    def test_long_garbage_amount_returns_invalid_amount(self, client):
        order_id = _place_order(client)

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": "x" * 80, "reason": "damaged"})

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidAmount"

    def test_missing_reason_returns_400(self, client):
        order_id = _place_order(client)

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 10, "reason": "  "})

        assert response.status_code == 400
        assert response.json()["kind"] == "MissingReason"

    def test_declined_refund_returns_502(self, client, payment_provider):
        payment_provider.configure(should_succeed=False, failure_reason="Card expired")
        order_id = _place_order(client, total_amount=100.0)

        response = client.post(f"/orders/{order_id}/refunds", json={"amount": 40, "reason": "damaged"})

        assert response.status_code == 502
        body = response.json()
        assert body["kind"] == "ProviderFailure"
        assert body["failure_reason"] == "Card expired"

        order = client.get(f"/orders/{order_id}").json()
        assert order["total_refunded_amount"] == 0.0
        assert order["refund_history"][0]["status"] == "failed"
        assert order["refund_history"][0]["refund_id"] == body["refund_id"]

    def test_refund_unknown_order_returns_404(self, client):
        response = client.post("/orders/does-not-exist/refunds", json={"amount": 10, "reason": "damaged"})
        assert response.status_code == 404


class TestProviderConfigurationAPI:
    def test_configure_payment_provider(self, client, payment_provider):
        response = client.post(
            "/providers/payment/configure",
            json={"should_succeed": False, "failure_reason": "Card expired"},
        )

        assert response.status_code == 200
        assert response.json()["provider"] == "FakePaymentProvider"
        assert payment_provider.should_succeed is False

    def test_configure_inventory(self, client, inventory_adjuster):
        response = client.post("/providers/inventory/configure", json={"failing_products": ["prod-002"]})

        assert response.status_code == 200
        assert response.json()["failing_products"] == ["prod-002"]
        assert inventory_adjuster.failing_products == {"prod-002"}

    def test_configuration_blocked_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")

        response = client.post("/providers/payment/configure", json={"should_succeed": False})

        assert response.status_code == 403


class TestConcurrentRequests:
    def test_refunds_on_different_orders_run_in_parallel(self, client):
        # Each refund waits at the barrier until the other one arrives, so the
        # pair only completes when both provider calls are in flight together.
        barrier = threading.Barrier(2, timeout=2.0)

        class RendezvousProvider(FakePaymentProvider):
            def refund(self, order_id, amount):
                barrier.wait()
                return super().refund(order_id, amount)

        set_payment_provider(RendezvousProvider())
        first, second = _place_order(client), _place_order(client)

        async def refund_both():
            transport = httpx.ASGITransport(app=client.app)
            async with httpx.AsyncClient(transport=transport, base_url="http://orderdesk") as async_client:
                return await asyncio.gather(
                    *(
                        async_client.post(f"/orders/{order_id}/refunds", json={"amount": 25, "reason": "damaged"})
                        for order_id in (first, second)
                    )
                )

        responses = asyncio.run(refund_both())

        assert [response.status_code for response in responses] == [200, 200]
        assert not barrier.broken
