"""Configurable fake payment provider for development and testing.

Simulates a provider without any external calls. It can be configured at
runtime to succeed, fail or stall, which makes it useful for:
- Manual API testing via /providers/payment/configure
- Automated tests with predictable outcomes
- Exercising the provider timeout without a real network
"""

import time
from uuid import uuid4

from orderdesk.gateway.port import PaymentProvider, RefundResult


class FakePaymentProvider(PaymentProvider):
    """Configurable fake payment provider."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Refund declined"
        self.delay_seconds: float = 0.0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Refund declined",
        delay_seconds: float = 0.0,
    ) -> None:
        """Configure provider behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def refund(self, order_id: str, amount: float) -> RefundResult:
        self.calls.append({"method": "refund", "order_id": order_id, "amount": amount})

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if self.should_succeed:
            return RefundResult(
                success=True,
                provider_reference=f"fake_ref_{uuid4().hex[:12]}",
                provider_status="succeeded",
            )
        return RefundResult(
            success=False,
            provider_status="failed",
            failure_reason=self.failure_reason,
        )
