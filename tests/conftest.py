import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture

ADDRESS = {
    "recipient_name": "Cut Nyak Dhien",
    "phone": "081234567890",
    "email": "buyer@example.com",
    "address": "Jl. Teuku Umar No. 12",
    "city": "Banda Aceh",
    "postal_code": "23122",
    "area_id": "IDNP1IDNC1IDND1IDZ23122",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay and the fake adapters before the domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("PAYMENT_GATEWAY", "fake")
    os.environ.setdefault("CARRIER_ADAPTER", "fake")
    os.environ.setdefault("IDENTITY_ADAPTER", "fake")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure and adapters after every test"""
    yield

    from protean import current_domain

    from marketplace.fulfillment.carrier import reset_carrier
    from marketplace.identity import reset_identity_provider
    from marketplace.payments.gateway import reset_gateway

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_carrier()
    reset_identity_provider()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def address():
    return dict(ADDRESS)


@pytest.fixture()
def make_product():
    from protean import current_domain

    from marketplace.inventory.stocking import RegisterProduct

    def _make(title="Arabica grounds", price_idr=20000, stock_qty=10.0, published=True, **extra):
        return current_domain.process(
            RegisterProduct(title=title, price_idr=price_idr, stock_qty=stock_qty, published=published, **extra),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def fill_cart():
    from protean import current_domain

    from marketplace.ordering.cart.management import AddToCart

    def _fill(buyer_id, *lines):
        for product_id, quantity in lines:
            current_domain.process(
                AddToCart(buyer_id=buyer_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )

    return _fill


@pytest.fixture()
def place_order(make_product, fill_cart, address):
    """Checkout a one-line cart. Returns (order_id, product_id)."""
    from marketplace.ordering.checkout import checkout

    def _place(buyer_id="buyer-1", quantity=2.5, stock_qty=10.0, price_idr=20000, shipping_fee_idr=15000):
        product_id = make_product(price_idr=price_idr, stock_qty=stock_qty)
        fill_cart(buyer_id, (product_id, quantity))
        result = checkout(
            buyer_id=buyer_id,
            shipping_address=address,
            shipping_fee_idr=shipping_fee_idr,
            courier_company="jne",
            courier_service="reg",
        )
        return result.order_id, product_id

    return _place


@pytest.fixture()
def fake_gateway():
    from marketplace.payments.gateway import set_gateway
    from marketplace.payments.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def fake_carrier():
    from marketplace.fulfillment.carrier import set_carrier
    from marketplace.fulfillment.carrier.fake_adapter import FakeCarrier

    carrier = FakeCarrier()
    set_carrier(carrier)
    return carrier


@pytest.fixture()
def paid_order(place_order, fake_gateway):
    """An order whose payment has settled. Returns (order_id, product_id)."""
    from marketplace.payments.session import open_payment_session
    from marketplace.reconciliation.reconciler import reconcile

    def _paid(**kwargs):
        order_id, product_id = place_order(**kwargs)
        session = open_payment_session(order_id)
        payload = fake_gateway.set_transaction_status(session.payment_reference, "settlement", payment_type="qris")
        reconcile("midtrans", payload)
        return order_id, product_id

    return _paid
