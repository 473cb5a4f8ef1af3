import os
from pathlib import Path

import pytest

# Settings the developer's shell may export; tests build their own settings
_BOOKORDERS_ENV_VARS = (
    "BOOKORDERS_COMMISSION_RATE",
    "BOOKORDERS_ZERO_SUBTOTAL_SHIPPING",
    "BOOKORDERS_CURRENCY",
    "BOOKORDERS_ADMIN_RECIPIENTS",
    "BOOKORDERS_FREE_SHIPPING_THRESHOLD",
    "BOOKORDERS_GATEWAY_SECRET",
    "BOOKORDERS_STOCK_DATABASE_URI",
)

_MARKERS_BY_DIRECTORY = {
    "/domain/": "domain",
    "/application/": "application",
    "/bdd/": "bdd",
    "/integration/": "integration",
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Protean config environment to run tests on",
    )
    parser.addoption(
        "--stock-db",
        action="store",
        default=None,
        help="SQLAlchemy URI for the SQL stock ledger tests (a temporary SQLite file when omitted)",
    )


def pytest_sessionstart(session):
    """Initialize the bookorders domain once and push its context for the session."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    for name in _BOOKORDERS_ENV_VARS:
        os.environ.pop(name, None)

    from bookorders.domain import bookorders

    bookorders.init()
    bookorders.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Mark tests by layer from the directory they live in."""
    for item in items:
        test_path = str(Path(item.fspath))
        marker = next((name for part, name in _MARKERS_BY_DIRECTORY.items() if part in test_path), None)
        if marker is None:
            continue
        item.add_marker(getattr(pytest.mark, marker))
        if marker == "integration" and not any(m.name == "fast" for m in item.iter_markers()):
            item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def stock_db_uri(request, tmp_path_factory):
    return request.config.getoption("--stock-db") or f"sqlite:///{tmp_path_factory.mktemp('stock') / 'stock.db'}"


@pytest.fixture(scope="session", autouse=True)
def order_store():
    """Create the order store tables for SQL providers, drop them at the end."""
    from bookorders.domain import bookorders
    from bookorders.utils.db import drop_db, setup_db

    setup_db(bookorders)
    yield
    drop_db(bookorders)


@pytest.fixture(autouse=True)
def reset_order_store():
    """Empty every provider and the event store after each test."""
    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()
