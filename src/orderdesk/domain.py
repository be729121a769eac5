"""OrderDesk bounded context: back-office order lifecycle and refund ledger.

Handles administrator-driven status changes on orders (event-sourced),
the refund ledger that tracks partial and full refunds against an order's
value, and the ports to the inventory and payment collaborators.
"""

from protean.domain import Domain

from orderdesk.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
orderdesk = Domain(name="orderdesk")
