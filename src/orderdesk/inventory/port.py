"""Inventory adjuster port: abstract interface for stock integrations.

The back office never owns stock levels; it only asks the inventory
system to put quantities back on the shelf when an order is cancelled.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RestockResult:
    """Result of returning stock for one product."""

    success: bool
    product_id: str | None = None
    quantity: int = 0
    failure_reason: str | None = None


class InventoryAdjuster(ABC):
    """Abstract interface for inventory adapters."""

    @abstractmethod
    def restock(self, product_id: str, quantity: int) -> RestockResult:
        """Add ``quantity`` units of ``product_id`` back to available stock."""
        ...
