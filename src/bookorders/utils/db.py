"""Database setup for the order store and the SQL stock ledger."""

import structlog
from protean.domain import Domain
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from bookorders.catalog import set_catalog
from bookorders.catalog.sql_adapter import SqlCatalog, create_tables, drop_tables
from bookorders.config import OrderingSettings
from bookorders.stock import set_stock_ledger
from bookorders.stock.sql_adapter import SqlStockLedger

logger = structlog.get_logger(__name__)


def setup_db(domain: Domain):
    """Create tables for every SQL provider of the domain."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])

                # Accessing _dao registers each model with the provider's SQLAlchemy metadata
                for _, aggregate_record in domain.registry.aggregates.items():
                    if aggregate_record.cls.meta_.provider == provider.name:
                        domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

                for _, entity_record in domain.registry.entities.items():
                    if entity_record.cls.meta_.provider == provider.name:
                        domain.repository_for(entity_record.cls)._dao  # noqa: B018

                provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)


def stock_engine(settings: OrderingSettings) -> Engine | None:
    if not settings.stock_database_uri:
        return None
    return create_engine(settings.stock_database_uri)


def setup_stock_db(settings: OrderingSettings) -> bool:
    """Create the books and stock_reservations tables. False when no stock database is configured."""
    engine = stock_engine(settings)
    if engine is None:
        return False
    create_tables(engine)
    return True


def drop_stock_db(settings: OrderingSettings) -> bool:
    engine = stock_engine(settings)
    if engine is None:
        return False
    drop_tables(engine)
    return True


def configure_stock_backend(settings: OrderingSettings) -> None:
    """Point the catalog and stock ledger at the SQL database when one is configured."""
    engine = stock_engine(settings)
    if engine is None:
        logger.info("stock_backend_configured", backend="memory")
        return
    set_catalog(SqlCatalog(engine))
    set_stock_ledger(SqlStockLedger(engine))
    logger.info("stock_backend_configured", backend=engine.dialect.name)
