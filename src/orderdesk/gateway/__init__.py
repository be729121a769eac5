"""Payment provider factory.

Provides get_payment_provider() / set_payment_provider() to swap
implementations. FakePaymentProvider is the default; PAYMENT_PROVIDER
selects another adapter by name.
"""

import os

from orderdesk.gateway.fake_adapter import FakePaymentProvider
from orderdesk.gateway.port import PaymentProvider

_current_provider: PaymentProvider | None = None


def get_payment_provider() -> PaymentProvider:
    """Return the current payment provider. Defaults to FakePaymentProvider."""
    global _current_provider
    if _current_provider is None:
        adapter = os.environ.get("PAYMENT_PROVIDER", "fake")
        if adapter != "fake":
            raise ValueError(f"Unknown payment provider: {adapter}")
        _current_provider = FakePaymentProvider()
    return _current_provider


def set_payment_provider(provider: PaymentProvider) -> None:
    """Override the active payment provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_payment_provider() -> None:
    """Reset to default provider."""
    global _current_provider
    _current_provider = None
