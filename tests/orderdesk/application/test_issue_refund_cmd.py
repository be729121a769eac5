"""Application tests for the refund command."""

import json

import pytest
from orderdesk.order.errors import AmountExceedsRefundable, InvalidAmount, MissingReason
from orderdesk.order.order import Order, RefundStatus
from orderdesk.order.placement import PlaceOrder
from orderdesk.order.refund import IssueRefund
from protean import current_domain


def _place_order(total_amount=100.0):
    return current_domain.process(
        PlaceOrder(
            items=json.dumps(
                [{"product_id": "prod-001", "product_name": "Linen Shirt", "quantity": 1, "unit_price": total_amount}]
            ),
            total_amount=total_amount,
        ),
        asynchronous=False,
    )


def _refund(order_id, amount, reason="damaged", **kwargs):
    return current_domain.process(
        IssueRefund(order_id=order_id, amount=amount, reason=reason, **kwargs),
        asynchronous=False,
    )


def _load(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestIssueRefundFlow:
    def test_partial_refund_persisted(self):
        order_id = _place_order(100.0)

        outcome = _refund(order_id, "30", issued_by="admin-001")

        order = _load(order_id)
        assert outcome.succeeded
        assert order.total_refunded_amount == 30.0
        assert order.refund_status == RefundStatus.PARTIAL.value
        assert order.refund_history[0].issued_by == "admin-001"

    def test_exceeding_refund_rejected_after_partial(self):
        order_id = _place_order(100.0)
        _refund(order_id, "30")

        with pytest.raises(AmountExceedsRefundable) as exc:
            _refund(order_id, "80", reason="extra")

        assert exc.value.max_refundable == 70.0
        assert _load(order_id).total_refunded_amount == 30.0

    def test_exact_remaining_amount(self):
        order_id = _place_order(100.0)
        _refund(order_id, "30")
        _refund(order_id, "70")

        order = _load(order_id)
        assert order.total_refunded_amount == 100.0
        assert order.refund_status == RefundStatus.FULL.value

    def test_missing_amount(self):
        order_id = _place_order()
        with pytest.raises(InvalidAmount):
            _refund(order_id, None)

    def test_non_numeric_amount(self):
        order_id = _place_order()
        with pytest.raises(InvalidAmount):
            _refund(order_id, "twenty")

    def test_missing_reason(self):
        order_id = _place_order()
        with pytest.raises(MissingReason):
            _refund(order_id, "10", reason=None)

    def test_declined_refund_persisted_as_failed(self, payment_provider):
        payment_provider.configure(should_succeed=False, failure_reason="Card expired")
        order_id = _place_order(100.0)

        outcome = _refund(order_id, "40")

        order = _load(order_id)
        assert not outcome.succeeded
        assert order.total_refunded_amount == 0.0
        assert len(order.refund_history) == 1
        assert order.refund_history[0].status == "failed"
        assert order.refund_history[0].failure_reason == "Card expired"

    def test_refund_events_stored(self, payment_provider):
        order_id = _place_order(100.0)
        _refund(order_id, "10")
        payment_provider.configure(should_succeed=False)
        _refund(order_id, "10")

        messages = current_domain.event_store.store.read(f"orderdesk::order-{order_id}")
        types = [m.metadata.headers.type.split(".")[1] for m in messages]
        assert types == ["OrderPlaced", "RefundIssued", "RefundFailed"]
