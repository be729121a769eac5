"""Refund ledger: refundable capacity, refund validation and refund issuing.

Every entry point that refunds money (the IssueRefund command and the
full refund triggered by a cancellation) goes through ``issue_refund``, and
every refund request is validated by ``validate_refund_request`` alone.
"""

from dataclasses import dataclass
from uuid import uuid4

from orderdesk.domain import logger
from orderdesk.gateway import get_payment_provider
from orderdesk.gateway.port import PaymentProvider, RefundResult
from orderdesk.order.errors import AmountExceedsRefundable, InvalidAmount, MissingReason
from orderdesk.order.order import Order
from orderdesk.shared.calls import ProviderCallError, call_with_timeout
from orderdesk.shared.money import normalize, parse_amount, to_cents

CANCELLATION_REFUND_REASON = "Order cancelled"

# Field limits on RefundEntry and the refund events. Text from the provider is
# cut to these lengths before it is recorded.
PROVIDER_REFERENCE_MAX_LENGTH = 255
FAILURE_REASON_MAX_LENGTH = 500


@dataclass(frozen=True)
class RefundOutcome:
    """What happened to one refund attempt."""

    refund_id: str
    amount: float
    succeeded: bool
    provider_reference: str | None = None
    failure_reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "refund_id": self.refund_id,
            "amount": self.amount,
            "status": "succeeded" if self.succeeded else "failed",
            "provider_reference": self.provider_reference,
            "failure_reason": self.failure_reason,
        }


def _bounded(text, max_length: int) -> str | None:
    if text is None:
        return None
    text = str(text)
    return text if len(text) <= max_length else text[: max_length - 3] + "..."


def compute_refundable_amount(order: Order) -> float:
    """Return ``total_amount - total_refunded_amount`` for the order. Never negative."""
    return order.refundable_amount()


def validate_refund_request(order: Order, amount, reason) -> tuple[float, str]:
    """Validate a refund request against the order's current state.

    Checks run in order and stop at the first failure:

    1. ``amount`` must parse to a finite number greater than zero
       (after rounding to the cent).
    2. ``reason`` must not be blank.
    3. ``amount`` must not exceed the refundable amount.

    Returns the normalised ``(amount, reason)`` pair.
    """
    value = parse_amount(amount)
    if value is None or to_cents(value) <= 0:
        raise InvalidAmount(amount)

    if reason is None or not str(reason).strip():
        raise MissingReason()

    value = normalize(value)
    max_refundable = compute_refundable_amount(order)
    if to_cents(value) > to_cents(max_refundable):
        raise AmountExceedsRefundable(value, max_refundable)

    return value, str(reason).strip()


def issue_refund(
    order: Order,
    amount,
    reason,
    issued_by: str | None = None,
    provider: PaymentProvider | None = None,
    timeout: float | None = None,
) -> RefundOutcome:
    """Validate and issue a refund through the payment provider.

    A provider failure or timeout is recorded on the order as a failed
    attempt and returned as an unsuccessful outcome; it is not raised.
    Validation errors are raised before the order or the provider is touched.
    """
    value, reason = validate_refund_request(order, amount, reason)
    provider = provider or get_payment_provider()
    refund_id = str(uuid4())

    try:
        result = call_with_timeout(provider.refund, order_id=str(order.id), amount=value, timeout=timeout)
    except ProviderCallError as exc:
        logger.warning("refund_provider_error", order_id=str(order.id), refund_id=refund_id, error=str(exc))
        result = RefundResult(success=False, failure_reason=str(exc))

    if result.success:
        provider_reference = _bounded(result.provider_reference, PROVIDER_REFERENCE_MAX_LENGTH)
        order.record_refund_success(
            refund_id=refund_id,
            amount=value,
            reason=reason,
            issued_by=issued_by,
            provider_reference=provider_reference,
        )
        logger.info(
            "refund_issued",
            order_id=str(order.id),
            refund_id=refund_id,
            amount=value,
            total_refunded_amount=order.total_refunded_amount,
        )
        return RefundOutcome(
            refund_id=refund_id,
            amount=value,
            succeeded=True,
            provider_reference=provider_reference,
        )

    failure_reason = _bounded(result.failure_reason or "Refund failed", FAILURE_REASON_MAX_LENGTH)
    order.record_refund_failure(
        refund_id=refund_id,
        amount=value,
        reason=reason,
        failure_reason=failure_reason,
        issued_by=issued_by,
    )
    logger.warning(
        "refund_failed",
        order_id=str(order.id),
        refund_id=refund_id,
        amount=value,
        failure_reason=failure_reason,
    )
    return RefundOutcome(
        refund_id=refund_id,
        amount=value,
        succeeded=False,
        failure_reason=failure_reason,
    )
