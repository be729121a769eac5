"""Order status state machine with its side effects.

``transition`` is the single authoritative place where a status change and
its consequences happen together:

    validate → tracking fields → status → history → cancellation side effects

Cancelling restocks every line item and refunds whatever is still
refundable. Neither a restock failure nor a refund failure undoes the
cancellation; both are reported back to the caller in the outcome.
"""

from dataclasses import dataclass, field

from orderdesk.domain import logger
from orderdesk.gateway.port import PaymentProvider
from orderdesk.inventory import get_inventory_adjuster
from orderdesk.inventory.port import InventoryAdjuster
from orderdesk.order.ledger import (
    CANCELLATION_REFUND_REASON,
    RefundOutcome,
    compute_refundable_amount,
    issue_refund,
)
from orderdesk.order.order import Order, OrderStatus
from orderdesk.shared.calls import ProviderCallError, call_with_timeout


@dataclass(frozen=True)
class RestockFailure:
    product_id: str
    quantity: int
    reason: str


@dataclass(frozen=True)
class TransitionOutcome:
    """Confirmation payload returned for a successful status change."""

    order_id: str
    previous_status: str
    status: str
    restocked: tuple = field(default_factory=tuple)
    restock_failures: tuple = field(default_factory=tuple)
    refund: RefundOutcome | None = None

    @property
    def fully_applied(self) -> bool:
        """False when a cancellation side effect failed."""
        refund_ok = self.refund is None or self.refund.succeeded
        return refund_ok and not self.restock_failures


def transition(
    order: Order,
    target_status,
    tracking_number: str | None = None,
    tracking_url: str | None = None,
    carrier: str | None = None,
    notes: str | None = None,
    changed_by: str | None = None,
    inventory: InventoryAdjuster | None = None,
    provider: PaymentProvider | None = None,
) -> TransitionOutcome:
    """Apply an administrator-requested status change to ``order``.

    Raises:
        InvalidTransition: the target is unknown or not reachable.
        MissingTrackingInfo: shipping without tracking number and URL.
    """
    previous_status = order.status
    order.transition_to(
        target_status,
        tracking_number=tracking_number,
        tracking_url=tracking_url,
        carrier=carrier,
        notes=notes,
        changed_by=changed_by,
    )
    logger.info(
        "order_status_changed",
        order_id=str(order.id),
        previous_status=previous_status,
        status=order.status,
        changed_by=changed_by,
    )

    if OrderStatus(order.status) is not OrderStatus.CANCELLED:
        return TransitionOutcome(order_id=str(order.id), previous_status=previous_status, status=order.status)

    restocked, restock_failures = restock_items(order, inventory or get_inventory_adjuster())
    refund = refund_remaining(order, issued_by=changed_by, provider=provider)

    return TransitionOutcome(
        order_id=str(order.id),
        previous_status=previous_status,
        status=order.status,
        restocked=tuple(restocked),
        restock_failures=tuple(restock_failures),
        refund=refund,
    )


def restock_items(order: Order, inventory: InventoryAdjuster) -> tuple[list[str], list[RestockFailure]]:
    """Hand every line item's quantity back to inventory, one call per item."""
    restocked = []
    failures = []
    for item in order.items:
        product_id = str(item.product_id)
        try:
            result = call_with_timeout(inventory.restock, product_id=product_id, quantity=item.quantity)
        except ProviderCallError as exc:
            failures.append(RestockFailure(product_id=product_id, quantity=item.quantity, reason=str(exc)))
            continue

        if result.success:
            restocked.append(product_id)
        else:
            failures.append(
                RestockFailure(
                    product_id=product_id,
                    quantity=item.quantity,
                    reason=result.failure_reason or "Restock failed",
                )
            )

    for failure in failures:
        logger.warning(
            "restock_failed",
            order_id=str(order.id),
            product_id=failure.product_id,
            quantity=failure.quantity,
            reason=failure.reason,
        )
    return restocked, failures


def refund_remaining(
    order: Order,
    issued_by: str | None = None,
    provider: PaymentProvider | None = None,
) -> RefundOutcome | None:
    """Refund everything not yet refunded. Returns None when nothing is left."""
    amount = compute_refundable_amount(order)
    if amount <= 0:
        return None
    return issue_refund(
        order,
        amount,
        CANCELLATION_REFUND_REASON,
        issued_by=issued_by,
        provider=provider,
    )
