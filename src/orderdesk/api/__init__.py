"""OrderDesk API package."""

from orderdesk.api.errors import register_error_handlers
from orderdesk.api.routes import order_router, provider_router

__all__ = ["order_router", "provider_router", "register_error_handlers"]
