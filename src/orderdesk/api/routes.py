"""FastAPI routes for the OrderDesk back office: orders, status changes and refunds."""

import json
import os

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from orderdesk.api.schemas import (
    ChangeOrderStatusRequest,
    ConfigureInventoryRequest,
    ConfigurePaymentProviderRequest,
    InventoryConfigResponse,
    IssueRefundRequest,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    PaymentProviderConfigResponse,
    PlaceOrderRequest,
    RefundAttemptResponse,
    RefundHistoryEntry,
    RefundResponse,
    RestockFailureResponse,
    StatusChangeResponse,
    StatusHistoryEntry,
)
from orderdesk.gateway import get_payment_provider
from orderdesk.gateway.fake_adapter import FakePaymentProvider
from orderdesk.inventory import get_inventory_adjuster
from orderdesk.inventory.fake_adapter import FakeInventoryAdjuster
from orderdesk.order.errors import ProviderFailure
from orderdesk.order.locking import process_exclusively
from orderdesk.order.order import Order
from orderdesk.order.placement import PlaceOrder
from orderdesk.order.refund import IssueRefund
from orderdesk.order.status_change import ChangeOrderStatus


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=order.customer_id,
        customer_email=order.customer_email,
        status=order.status,
        currency=order.currency,
        total_amount=order.total_amount,
        total_refunded_amount=order.total_refunded_amount,
        refundable_amount=order.refundable_amount(),
        refund_status=order.refund_status,
        tracking_number=order.tracking_number,
        tracking_url=order.tracking_url,
        carrier=order.carrier,
        items=[
            OrderItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for item in order.items
        ],
        status_history=[
            StatusHistoryEntry(
                status=entry.status,
                notes=entry.notes,
                changed_by=entry.changed_by,
                timestamp=entry.changed_at,
            )
            for entry in order.status_history
        ],
        refund_history=[
            RefundHistoryEntry(
                refund_id=str(entry.id),
                amount=entry.amount,
                reason=entry.reason,
                status=entry.status,
                issued_by=entry.issued_by,
                provider_reference=entry.provider_reference,
                failure_reason=entry.failure_reason,
                timestamp=entry.attempted_at,
            )
            for entry in order.refund_history
        ],
    )


def _load_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    """Bring a checked-out order into the back office in Pending status."""
    command = PlaceOrder(
        customer_id=body.customer_id,
        customer_email=body.customer_email,
        items=json.dumps([item.model_dump() for item in body.items]),
        total_amount=body.total_amount,
        currency=body.currency,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _load_order(order_id)


@order_router.put("/{order_id}/status", response_model=StatusChangeResponse)
def change_order_status(order_id: str, body: ChangeOrderStatusRequest) -> StatusChangeResponse:
    """Move an order to a new status.

    A cancellation answers 200 even when restocking or the automatic refund
    failed; those failures are listed in the response.
    """
    command = ChangeOrderStatus(
        order_id=order_id,
        new_status=body.new_status,
        tracking_number=body.tracking_number,
        tracking_url=body.tracking_url,
        carrier=body.carrier,
        notes=body.notes,
        changed_by=body.changed_by,
    )
    outcome = process_exclusively(command)
    return StatusChangeResponse(
        message=f"Order status updated to {outcome.status}",
        previous_status=outcome.previous_status,
        status=outcome.status,
        restocked=list(outcome.restocked),
        restock_failures=[
            RestockFailureResponse(product_id=f.product_id, quantity=f.quantity, reason=f.reason)
            for f in outcome.restock_failures
        ],
        refund=RefundAttemptResponse(**outcome.refund.to_dict()) if outcome.refund else None,
        order=_load_order(order_id),
    )


@order_router.post("/{order_id}/refunds", response_model=RefundResponse)
def issue_refund(order_id: str, body: IssueRefundRequest) -> RefundResponse:
    """Refund part or all of an order through the payment provider.

    A provider rejection or timeout answers 502 with kind ``ProviderFailure``.
    The failed attempt is still kept in the order's refund history.
    """
    command = IssueRefund(
        order_id=order_id,
        amount=str(body.amount) if body.amount is not None else None,
        reason=body.reason,
        issued_by=body.issued_by,
    )
    outcome = process_exclusively(command)
    if not outcome.succeeded:
        raise ProviderFailure(
            f"Refund failed: {outcome.failure_reason}",
            order_id=order_id,
            refund_id=outcome.refund_id,
            amount=outcome.amount,
            failure_reason=outcome.failure_reason,
        )

    return RefundResponse(
        message="Refund issued",
        refund=RefundAttemptResponse(**outcome.to_dict()),
        order=_load_order(order_id),
    )


# ---------------------------------------------------------------------------
# Provider Router (non-production only)
# ---------------------------------------------------------------------------
provider_router = APIRouter(prefix="/providers", tags=["providers"])


def _ensure_not_production():
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Provider configuration not available in production")


@provider_router.post("/payment/configure", response_model=PaymentProviderConfigResponse)
async def configure_payment_provider(body: ConfigurePaymentProviderRequest) -> PaymentProviderConfigResponse:
    """Configure the FakePaymentProvider behavior for manual API testing."""
    _ensure_not_production()

    provider = get_payment_provider()
    if not isinstance(provider, FakePaymentProvider):
        raise HTTPException(status_code=400, detail="Configuration only available for FakePaymentProvider")

    provider.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        delay_seconds=body.delay_seconds,
    )
    return PaymentProviderConfigResponse(
        provider=type(provider).__name__,
        should_succeed=provider.should_succeed,
        failure_reason=provider.failure_reason,
        delay_seconds=provider.delay_seconds,
    )


@provider_router.post("/inventory/configure", response_model=InventoryConfigResponse)
async def configure_inventory(body: ConfigureInventoryRequest) -> InventoryConfigResponse:
    """Configure the FakeInventoryAdjuster behavior for manual API testing."""
    _ensure_not_production()

    adjuster = get_inventory_adjuster()
    if not isinstance(adjuster, FakeInventoryAdjuster):
        raise HTTPException(status_code=400, detail="Configuration only available for FakeInventoryAdjuster")

    adjuster.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        failing_products=body.failing_products,
    )
    return InventoryConfigResponse(
        adjuster=type(adjuster).__name__,
        should_succeed=adjuster.should_succeed,
        failure_reason=adjuster.failure_reason,
        failing_products=sorted(adjuster.failing_products),
    )
