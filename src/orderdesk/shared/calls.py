"""Bounded calls to external collaborators.

Inventory and payment adapters run on a small worker pool so a hung
provider cannot hold a request forever. A call that does not return within
the configured timeout, or raises, is reported as a ProviderCallError and the
caller treats it like any other provider failure.
"""

import contextvars
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

from protean.utils.globals import current_domain

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 5.0
DEFAULT_ORDER_LOCK_TIMEOUT_SECONDS = 30.0

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="orderdesk-provider")


class ProviderCallError(Exception):
    """A collaborator call raised or did not complete."""


class ProviderTimeout(ProviderCallError):
    pass


def custom_setting(name: str, default: float) -> float:
    """Read a numeric value from the domain's ``[custom]`` configuration."""
    custom = current_domain.config.get("custom") or {}
    value = custom.get(name)
    return float(value) if value is not None else default


def provider_timeout() -> float:
    return custom_setting("PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT_SECONDS)


def call_with_timeout(fn, *args, timeout: float | None = None, **kwargs):
    """Run ``fn(*args, **kwargs)`` and wait at most ``timeout`` seconds for it."""
    if timeout is None:
        timeout = provider_timeout()

    # Provider calls see the caller's bound log context.
    future = _executor.submit(contextvars.copy_context().run, fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError as exc:
        future.cancel()
        raise ProviderTimeout(f"Provider did not respond within {timeout:g}s") from exc
    except Exception as exc:
        raise ProviderCallError(str(exc) or type(exc).__name__) from exc
