"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
Events are persisted to the event store and used for:
- Rebuilding aggregate state via @apply (event sourcing)
- Auditing every status change and refund attempt
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from orderdesk.domain import orderdesk


@orderdesk.event(part_of="Order")
class OrderPlaced:
    """A customer order entered the back office in Pending status."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier()
    customer_email = String()
    items = Text(required=True)  # JSON: list of item dicts
    total_amount = Float(required=True)
    currency = String(default="GBP")
    placed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------
@orderdesk.event(part_of="Order")
class OrderProcessing:
    """An administrator started processing the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    notes = String(max_length=500)
    changed_by = String()
    changed_at = DateTime(required=True)


@orderdesk.event(part_of="Order")
class OrderAwaitingShipment:
    """The order was packed and is waiting for carrier pickup."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    notes = String(max_length=500)
    changed_by = String()
    changed_at = DateTime(required=True)


@orderdesk.event(part_of="Order")
class OrderShipped:
    """The order was handed to a carrier with tracking information."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    tracking_number = String(max_length=100, required=True)
    tracking_url = String(max_length=500, required=True)
    carrier = String(max_length=100)
    notes = String(max_length=500)
    changed_by = String()
    changed_at = DateTime(required=True)


@orderdesk.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    notes = String(max_length=500)
    changed_by = String()
    changed_at = DateTime(required=True)


@orderdesk.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; stock is restocked and the paid amount refunded."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    notes = String(max_length=500)
    changed_by = String()
    changed_at = DateTime(required=True)


@orderdesk.event(part_of="Order")
class OrderRefunded:
    """A delivered order was moved to Refunded by an administrator."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    notes = String(max_length=500)
    changed_by = String()
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Refund ledger
# ---------------------------------------------------------------------------
@orderdesk.event(part_of="Order")
class RefundIssued:
    """The payment provider accepted a refund against the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=500, required=True)
    issued_by = String()
    provider_reference = String()
    total_refunded_amount = Float(required=True)
    fully_refunded = Boolean(default=False)
    issued_at = DateTime(required=True)


@orderdesk.event(part_of="Order")
class RefundFailed:
    """The payment provider rejected or did not answer a refund request."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=500, required=True)
    issued_by = String()
    failure_reason = String(max_length=500, required=True)
    failed_at = DateTime(required=True)
