"""Order aggregate (Event Sourced): the core of the back-office domain.

Every status change and refund attempt is captured as a domain event and the
current state is rebuilt by replaying events via @apply decorators. The
status and refund histories on the aggregate are derived from those events,
so they are append-only by construction.

State Machine (7 states):
    PENDING → PROCESSING → AWAITING_SHIPMENT → SHIPPED → DELIVERED → REFUNDED
    PROCESSING → SHIPPED
    CANCELLED (from PENDING, PROCESSING, AWAITING_SHIPMENT, SHIPPED)

CANCELLED and REFUNDED are terminal. Refunds never change the status: a fully
refunded delivered order stays DELIVERED until an administrator moves it.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
)

from orderdesk.domain import orderdesk
from orderdesk.order.errors import (
    AmountExceedsRefundable,
    InvalidAmount,
    InvalidTransition,
    MissingReason,
    MissingTrackingInfo,
)
from orderdesk.order.events import (
    OrderAwaitingShipment,
    OrderCancelled,
    OrderDelivered,
    OrderPlaced,
    OrderProcessing,
    OrderRefunded,
    OrderShipped,
    RefundFailed,
    RefundIssued,
)
from orderdesk.shared.money import from_cents, normalize, to_cents


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    AWAITING_SHIPMENT = "awaiting_shipment"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class RefundStatus(Enum):
    NONE = "none"
    PARTIAL = "partial_refunded"
    FULL = "fully_refunded"


class RefundOutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset(
        {
            OrderStatus.AWAITING_SHIPMENT,
            OrderStatus.SHIPPED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.AWAITING_SHIPMENT: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset(),  # Terminal
    OrderStatus.REFUNDED: frozenset(),  # Terminal
}

_unmapped = set(OrderStatus) - set(_VALID_TRANSITIONS)
if _unmapped:
    raise RuntimeError(f"Order statuses missing from transition table: {sorted(s.value for s in _unmapped)}")

TERMINAL_STATES = frozenset(status for status, allowed in _VALID_TRANSITIONS.items() if not allowed)

# Event raised for each target status
_TRANSITION_EVENTS = {
    OrderStatus.PROCESSING: OrderProcessing,
    OrderStatus.AWAITING_SHIPMENT: OrderAwaitingShipment,
    OrderStatus.SHIPPED: OrderShipped,
    OrderStatus.DELIVERED: OrderDelivered,
    OrderStatus.CANCELLED: OrderCancelled,
    OrderStatus.REFUNDED: OrderRefunded,
}


def allowed_transitions(status: OrderStatus) -> frozenset:
    """Statuses an order in ``status`` may move to next."""
    return _VALID_TRANSITIONS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    # A status is never a valid target from itself: no entry in the table
    # lists its own key, so duplicate submissions are rejected here.
    return target in _VALID_TRANSITIONS[current]


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orderdesk.entity(part_of="Order")
class OrderItem:
    """A line item captured at checkout.

    Read-only for the back office; quantities are handed back to inventory
    when the order is cancelled.
    """

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=100)
    quantity = Integer(required=True, min_value=1, max_value=99)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)


@orderdesk.entity(part_of="Order")
class StatusChange:
    """One entry in the order's status history, oldest first."""

    status = String(required=True, choices=OrderStatus)
    notes = String(max_length=500)
    changed_by = String(max_length=100)
    changed_at = DateTime(required=True)


@orderdesk.entity(part_of="Order")
class RefundEntry:
    """One refund attempt against the order, successful or not."""

    amount = Float(required=True, min_value=0.0)
    reason = String(required=True, max_length=500)
    status = String(required=True, choices=RefundOutcomeStatus)
    issued_by = String(max_length=100)
    provider_reference = String(max_length=255)
    failure_reason = String(max_length=500)
    attempted_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@orderdesk.aggregate(is_event_sourced=True)
class Order:
    order_number = String(max_length=20)
    customer_id = Identifier()
    customer_email = String(max_length=255)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    currency = String(max_length=3, default="GBP")
    total_amount = Float(default=0.0, min_value=0.0)
    total_refunded_amount = Float(default=0.0, min_value=0.0)
    refund_status = String(
        choices=RefundStatus,
        default=RefundStatus.NONE.value,
    )
    tracking_number = String(max_length=100)
    tracking_url = String(max_length=500)
    carrier = String(max_length=100)
    status_history = HasMany(StatusChange)
    refund_history = HasMany(RefundEntry)
    placed_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def refunded_total_cannot_exceed_order_total(self):
        if self.total_amount is None or self.total_refunded_amount is None:
            return
        refunded = to_cents(self.total_refunded_amount)
        if refunded < 0 or refunded > to_cents(self.total_amount):
            raise ValidationError({"total_refunded_amount": ["Refunded total must stay between 0 and the order total"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, items_data, customer_id=None, customer_email=None, total_amount=None, currency="GBP"):
        """Place a new order in Pending status.

        Args:
            items_data: List of dicts with product_id, product_name, quantity,
                        unit_price.
            customer_id: The customer who placed the order.
            customer_email: Contact address for order notifications.
            total_amount: Amount paid. Defaults to the sum of the line totals.
            currency: ISO 4217 code.
        """
        if not items_data:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        items = [
            {
                **item,
                "id": str(uuid4()),
                "total_price": normalize(item["unit_price"] * item["quantity"]),
            }
            for item in items_data
        ]
        if total_amount is None:
            total_amount = from_cents(sum(to_cents(item["total_price"]) for item in items))
        if total_amount < 0:
            raise ValidationError({"total_amount": ["Total amount cannot be negative"]})

        now = datetime.now(UTC)
        order = cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=f"ORD-{now:%y%m%d}-{uuid4().hex[:6].upper()}",
                customer_id=str(customer_id) if customer_id else None,
                customer_email=customer_email,
                items=json.dumps(items),
                total_amount=normalize(total_amount),
                currency=currency or "GBP",
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def transition_to(
        self,
        target_status,
        tracking_number=None,
        tracking_url=None,
        carrier=None,
        notes=None,
        changed_by=None,
    ):
        """Move the order to ``target_status``.

        Validation happens before any event is raised, so a rejected request
        leaves the order untouched.

        Raises:
            InvalidTransition: unknown status, or not reachable from the current one.
            MissingTrackingInfo: shipping without both tracking number and URL.
        """
        current = OrderStatus(self.status)
        target = self._resolve_status(current, target_status)

        if not can_transition(current, target):
            raise InvalidTransition(current.value, target.value)

        now = datetime.now(UTC)
        notes = (notes or "").strip() or f"Status changed from {current.value} to {target.value}"
        payload = {
            "order_id": str(self.id),
            "previous_status": current.value,
            "notes": notes,
            "changed_by": changed_by,
            "changed_at": now,
        }

        if target is OrderStatus.SHIPPED:
            tracking_number = (tracking_number or "").strip()
            tracking_url = (tracking_url or "").strip()
            missing = [
                name
                for name, value in (("tracking_number", tracking_number), ("tracking_url", tracking_url))
                if not value
            ]
            if missing:
                raise MissingTrackingInfo(missing)
            payload.update(
                tracking_number=tracking_number,
                tracking_url=tracking_url,
                carrier=(carrier or "").strip() or None,
            )

        self.raise_(_TRANSITION_EVENTS[target](**payload))

    @staticmethod
    def _resolve_status(current, target_status):
        if isinstance(target_status, OrderStatus):
            return target_status
        try:
            return OrderStatus(str(target_status).strip().lower())
        except ValueError:
            raise InvalidTransition(current.value, str(target_status)) from None

    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATES

    # -------------------------------------------------------------------
    # Refund ledger
    # -------------------------------------------------------------------
    def refundable_amount(self) -> float:
        """Portion of the order total not yet successfully refunded."""
        remaining = to_cents(self.total_amount or 0.0) - to_cents(self.total_refunded_amount or 0.0)
        return from_cents(max(0, remaining))

    def is_refund_eligible(self) -> bool:
        return self.refundable_amount() > 0

    def record_refund_success(self, refund_id, amount, reason, issued_by=None, provider_reference=None):
        """Record a refund the payment provider accepted."""
        amount = self._assert_refundable(amount, reason)
        total_cents = to_cents(self.total_refunded_amount or 0.0) + to_cents(amount)
        self.raise_(
            RefundIssued(
                order_id=str(self.id),
                refund_id=str(refund_id),
                amount=amount,
                reason=reason,
                issued_by=issued_by,
                provider_reference=provider_reference,
                total_refunded_amount=from_cents(total_cents),
                fully_refunded=total_cents >= to_cents(self.total_amount),
                issued_at=datetime.now(UTC),
            )
        )

    def record_refund_failure(self, refund_id, amount, reason, failure_reason, issued_by=None):
        """Record a refund attempt the provider rejected. Capacity is not consumed."""
        amount = self._assert_refundable(amount, reason)
        self.raise_(
            RefundFailed(
                order_id=str(self.id),
                refund_id=str(refund_id),
                amount=amount,
                reason=reason,
                issued_by=issued_by,
                failure_reason=failure_reason or "Refund failed",
                failed_at=datetime.now(UTC),
            )
        )

    def _assert_refundable(self, amount, reason):
        if amount is None or to_cents(amount) <= 0:
            raise InvalidAmount(amount)
        if not reason or not reason.strip():
            raise MissingReason()
        max_refundable = self.refundable_amount()
        if to_cents(amount) > to_cents(max_refundable):
            raise AmountExceedsRefundable(amount, max_refundable)
        return normalize(amount)

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    def _record_status_change(self, status, event):
        self.status = status.value
        self.add_status_history(
            StatusChange(
                status=status.value,
                notes=event.notes,
                changed_by=event.changed_by,
                changed_at=event.changed_at,
            )
        )
        self.updated_at = event.changed_at

    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.order_number = event.order_number
        self.customer_id = event.customer_id
        self.customer_email = event.customer_email
        self.status = OrderStatus.PENDING.value
        self.currency = event.currency or "GBP"
        self.total_amount = event.total_amount
        self.total_refunded_amount = 0.0
        self.refund_status = RefundStatus.NONE.value
        self.placed_at = event.placed_at
        self.updated_at = event.placed_at

        # Reconstruct items from JSON (includes IDs for deterministic replay)
        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderItem(**item_data) for item_data in items_data]

        self.add_status_history(
            StatusChange(
                status=OrderStatus.PENDING.value,
                notes="Order placed",
                changed_at=event.placed_at,
            )
        )

    @apply
    def _on_order_processing(self, event: OrderProcessing):
        self._record_status_change(OrderStatus.PROCESSING, event)

    @apply
    def _on_order_awaiting_shipment(self, event: OrderAwaitingShipment):
        self._record_status_change(OrderStatus.AWAITING_SHIPMENT, event)

    @apply
    def _on_order_shipped(self, event: OrderShipped):
        self.tracking_number = event.tracking_number
        self.tracking_url = event.tracking_url
        if event.carrier:
            self.carrier = event.carrier
        self._record_status_change(OrderStatus.SHIPPED, event)

    @apply
    def _on_order_delivered(self, event: OrderDelivered):
        self._record_status_change(OrderStatus.DELIVERED, event)

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self._record_status_change(OrderStatus.CANCELLED, event)

    @apply
    def _on_order_refunded(self, event: OrderRefunded):
        self._record_status_change(OrderStatus.REFUNDED, event)

    @apply
    def _on_refund_issued(self, event: RefundIssued):
        self.add_refund_history(
            RefundEntry(
                id=event.refund_id,
                amount=event.amount,
                reason=event.reason,
                status=RefundOutcomeStatus.SUCCEEDED.value,
                issued_by=event.issued_by,
                provider_reference=event.provider_reference,
                attempted_at=event.issued_at,
            )
        )
        self.total_refunded_amount = event.total_refunded_amount
        self.refund_status = RefundStatus.FULL.value if event.fully_refunded else RefundStatus.PARTIAL.value
        self.updated_at = event.issued_at

    @apply
    def _on_refund_failed(self, event: RefundFailed):
        self.add_refund_history(
            RefundEntry(
                id=event.refund_id,
                amount=event.amount,
                reason=event.reason,
                status=RefundOutcomeStatus.FAILED.value,
                issued_by=event.issued_by,
                failure_reason=event.failure_reason,
                attempted_at=event.failed_at,
            )
        )
        self.updated_at = event.failed_at
