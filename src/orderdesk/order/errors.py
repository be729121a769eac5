"""Error kinds raised by the order state machine and the refund ledger.

Every kind is a protean ``ValidationError`` so command handlers roll back
their unit of work and protean's FastAPI handlers still recognise them.
Each one also carries a ``kind`` name, a human-readable ``message`` and a
structured ``payload`` for callers that need more than the message.
"""

import math

from protean.exceptions import ValidationError

from orderdesk.shared.money import format_amount


class OrderDeskError(ValidationError):
    kind = "OrderDeskError"
    field = "order"
    status_code = 400

    def __init__(self, message: str, **payload):
        self.message = message
        self.payload = payload
        super().__init__({self.field: [message]})

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "errors": self.messages,
            **self.payload,
        }


class InvalidTransition(OrderDeskError):
    """The requested status is not reachable from the order's current status."""

    kind = "InvalidTransition"
    field = "status"

    def __init__(self, current_status: str, requested_status: str):
        super().__init__(
            f"Invalid status transition from {current_status} to {requested_status}",
            current_status=current_status,
            requested_status=requested_status,
        )


class MissingTrackingInfo(OrderDeskError):
    kind = "MissingTrackingInfo"
    field = "tracking"

    def __init__(self, missing: list[str]):
        super().__init__(
            "Tracking number and tracking URL are required for shipped status",
            missing=missing,
        )


class InvalidAmount(OrderDeskError):
    kind = "InvalidAmount"
    field = "amount"

    def __init__(self, amount=None):
        super().__init__("Refund amount must be a positive number", amount=_printable(amount))


class MissingReason(OrderDeskError):
    kind = "MissingReason"
    field = "reason"

    def __init__(self):
        super().__init__("Refund reason is required")


class AmountExceedsRefundable(OrderDeskError):
    """The refund would push the refunded total past the order total.

    ``max_refundable`` lets the caller re-prompt with the remaining capacity.
    """

    kind = "AmountExceedsRefundable"
    field = "amount"

    def __init__(self, amount: float, max_refundable: float):
        self.max_refundable = max_refundable
        super().__init__(
            f"Refund amount ({format_amount(amount)}) exceeds maximum refundable amount "
            f"({format_amount(max_refundable)})",
            amount=amount,
            max_refundable=max_refundable,
        )


class ProviderFailure(OrderDeskError):
    """An inventory or payment collaborator failed or timed out."""

    kind = "ProviderFailure"
    field = "provider"
    status_code = 502

    def __init__(self, message: str, **payload):
        super().__init__(message, **payload)


class OrderBusy(OrderDeskError):
    """Another command is still running against the same order."""

    kind = "OrderBusy"
    status_code = 409

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} is being updated by another request", order_id=order_id)


def _printable(value):
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if value is None or isinstance(value, int | float | str):
        return value
    return repr(value)
