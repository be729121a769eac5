"""Payment provider port (abstract interface).

Defines the contract every payment adapter must implement. The refund
ledger only needs one operation: return money for an order. How the
provider talks to the card network, PayPal or a crypto wallet is the
adapter's business.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    provider_reference: str | None = None
    provider_status: str | None = None
    failure_reason: str | None = None


class PaymentProvider(ABC):
    """Abstract payment provider interface."""

    @abstractmethod
    def refund(self, order_id: str, amount: float) -> RefundResult:
        """Return ``amount`` to the customer who paid for ``order_id``."""
        ...
