"""Fake inventory adjuster: in-memory stock levels for testing and development.

Keeps a running tally of restocked quantities per product. Configurable
success/failure behavior, optionally for selected products only.
"""

import time
from collections import defaultdict

from orderdesk.inventory.port import InventoryAdjuster, RestockResult


class FakeInventoryAdjuster(InventoryAdjuster):
    """Fake inventory adjuster that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Inventory service unavailable"
        self.failing_products: set[str] = set()
        self.delay_seconds = 0.0
        self.restocked: dict[str, int] = defaultdict(int)
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Inventory service unavailable",
        failing_products=None,
        delay_seconds: float = 0.0,
    ):
        """Configure the fake adjuster behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.failing_products = set(failing_products or [])
        self.delay_seconds = delay_seconds

    def restock(self, product_id: str, quantity: int) -> RestockResult:
        self.calls.append({"method": "restock", "product_id": product_id, "quantity": quantity})

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if not self.should_succeed or product_id in self.failing_products:
            return RestockResult(
                success=False,
                product_id=product_id,
                quantity=quantity,
                failure_reason=self.failure_reason,
            )

        self.restocked[product_id] += quantity
        return RestockResult(success=True, product_id=product_id, quantity=quantity)
