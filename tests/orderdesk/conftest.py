import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def orderdesk_bed():
    from orderdesk.domain import orderdesk

    bed = DomainFixture(orderdesk)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(orderdesk_bed):
    with orderdesk_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def payment_provider():
    """A fresh FakePaymentProvider for every test."""
    from orderdesk.gateway import reset_payment_provider, set_payment_provider
    from orderdesk.gateway.fake_adapter import FakePaymentProvider

    provider = FakePaymentProvider()
    set_payment_provider(provider)
    yield provider
    reset_payment_provider()


@pytest.fixture(autouse=True)
def inventory_adjuster():
    """A fresh FakeInventoryAdjuster for every test."""
    from orderdesk.inventory import reset_inventory_adjuster, set_inventory_adjuster
    from orderdesk.inventory.fake_adapter import FakeInventoryAdjuster

    adjuster = FakeInventoryAdjuster()
    set_inventory_adjuster(adjuster)
    yield adjuster
    reset_inventory_adjuster()
