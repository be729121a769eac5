"""Inventory adjuster abstraction: pluggable stock integration."""

import os

from orderdesk.inventory.port import InventoryAdjuster

_adjuster_instance: InventoryAdjuster | None = None


def get_inventory_adjuster() -> InventoryAdjuster:
    """Return the configured inventory adjuster (singleton).

    Uses FakeInventoryAdjuster by default. In production, configure via
    INVENTORY_ADAPTER environment variable.
    """
    global _adjuster_instance
    if _adjuster_instance is None:
        adapter = os.environ.get("INVENTORY_ADAPTER", "fake")
        if adapter == "fake":
            from orderdesk.inventory.fake_adapter import FakeInventoryAdjuster

            _adjuster_instance = FakeInventoryAdjuster()
        else:
            raise ValueError(f"Unknown inventory adapter: {adapter}")
    return _adjuster_instance


def set_inventory_adjuster(adjuster: InventoryAdjuster) -> None:
    """Override the active inventory adjuster (useful for tests)."""
    global _adjuster_instance
    _adjuster_instance = adjuster


def reset_inventory_adjuster():
    """Reset the adjuster singleton (useful for testing)."""
    global _adjuster_instance
    _adjuster_instance = None
