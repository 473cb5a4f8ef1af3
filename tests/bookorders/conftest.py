"""Fixtures shared by the bookorders tests.

Every test gets fresh in-memory collaborators (catalog, stock ledger, coupon
service, shipping calculator, payment gateway and notification dispatcher)
installed in the registries, and default settings.
"""

import pytest

from bookorders.catalog import reset_catalog, set_catalog
from bookorders.catalog.memory_adapter import InMemoryCatalog
from bookorders.config import OrderingSettings, reset_settings, set_settings
from bookorders.coupons import reset_coupon_service, set_coupon_service
from bookorders.coupons.memory_adapter import InMemoryCouponService
from bookorders.gateway import reset_gateway, set_gateway
from bookorders.gateway.fake_adapter import FakeGateway
from bookorders.notifications import reset_dispatcher, set_dispatcher
from bookorders.notifications.fake_dispatcher import FakeNotificationDispatcher
from bookorders.shipping import reset_shipping_calculator, set_shipping_calculator
from bookorders.shipping.zone_adapter import ZoneShippingCalculator
from bookorders.stock import reset_stock_ledger, set_stock_ledger
from bookorders.stock.memory_adapter import InMemoryStockLedger

GATEWAY_SECRET = "test-gateway-secret"


@pytest.fixture(scope="session")
def bookorders_domain():
    from bookorders.domain import bookorders

    return bookorders


@pytest.fixture(autouse=True)
def _ctx(bookorders_domain):
    with bookorders_domain.domain_context():
        yield


@pytest.fixture(autouse=True)
def settings():
    settings = OrderingSettings(
        commission_rate=2.5,
        admin_recipients=["admin-1"],
        gateway_secret=GATEWAY_SECRET,
    )
    set_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture(autouse=True)
def catalog():
    catalog = InMemoryCatalog()
    catalog.add_book("book-a1", "The Dispossessed", 300.0, 10, "seller-a")
    catalog.add_book("book-a2", "The Lathe of Heaven", 150.0, 5, "seller-a")
    catalog.add_book("book-b1", "Kindred", 200.0, 3, "seller-b")
    catalog.add_book("book-b2", "Public Domain Poems", 0.0, 5, "seller-b")
    catalog.add_book("book-c1", "Last Copy", 450.0, 1, "seller-c")
    set_catalog(catalog)
    yield catalog
    reset_catalog()


@pytest.fixture(autouse=True)
def ledger(catalog):
    ledger = InMemoryStockLedger(catalog)
    set_stock_ledger(ledger)
    yield ledger
    reset_stock_ledger()


@pytest.fixture(autouse=True)
def coupons():
    service = InMemoryCouponService()
    service.add_coupon("SAVE10", "percentage", 10.0, description="10% off")
    service.add_coupon("FLAT100", "fixed", 100.0, description="100 off", min_order_amount=500.0)
    set_coupon_service(service)
    yield service
    reset_coupon_service()


@pytest.fixture(autouse=True)
def shipping():
    calculator = ZoneShippingCalculator(free_shipping_threshold=2000.0)
    set_shipping_calculator(calculator)
    yield calculator
    reset_shipping_calculator()


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway(secret=GATEWAY_SECRET)
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture(autouse=True)
def dispatcher():
    fake = FakeNotificationDispatcher()
    set_dispatcher(fake)
    yield fake
    reset_dispatcher()
