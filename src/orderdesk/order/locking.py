"""Per-order mutual exclusion for status changes and refunds.

Both operations are check-then-act sequences on a single order, so two
administrators submitting against the same order must not interleave.
Commands for one order are serialised through a keyed lock held across the
whole command, including the unit of work commit. Commands for different
orders never contend.

The lock only covers this process. When several processes share an event
store, the store's expected-version check on append rejects the later writer.
"""

import threading
import weakref
from contextlib import contextmanager

from protean.utils.globals import current_domain

from orderdesk.domain import logger
from orderdesk.order.errors import OrderBusy
from orderdesk.shared.calls import DEFAULT_ORDER_LOCK_TIMEOUT_SECONDS, custom_setting
from orderdesk.utils.logging import add_context, remove_context


class _OrderLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self):
        self.lock = threading.Lock()


_registry_lock = threading.Lock()
_order_locks: "weakref.WeakValueDictionary[str, _OrderLock]" = weakref.WeakValueDictionary()


def _lock_for(order_id: str) -> _OrderLock:
    with _registry_lock:
        entry = _order_locks.get(order_id)
        if entry is None:
            entry = _OrderLock()
            _order_locks[order_id] = entry
        return entry


@contextmanager
def order_lock(order_id, timeout: float | None = None):
    """Hold the lock for ``order_id`` for the duration of the block.

    Raises:
        OrderBusy: the lock could not be acquired within ``timeout`` seconds.
    """
    if timeout is None:
        timeout = custom_setting("ORDER_LOCK_TIMEOUT_SECONDS", DEFAULT_ORDER_LOCK_TIMEOUT_SECONDS)

    entry = _lock_for(str(order_id))
    if not entry.lock.acquire(timeout=timeout):
        logger.warning("order_lock_timeout", order_id=str(order_id), timeout=timeout)
        raise OrderBusy(str(order_id))
    try:
        yield
    finally:
        entry.lock.release()


def process_exclusively(command):
    """Process a command that targets one order while holding that order's lock.

    ``order_id`` and ``command`` are bound to the logging context for the
    duration, so every log line the command produces names the order.
    """
    add_context(order_id=str(command.order_id), command=type(command).__name__)
    try:
        with order_lock(command.order_id):
            return current_domain.process(command, asynchronous=False)
    finally:
        remove_context("order_id", "command")
