"""Stock ledger factory.

Provides get_stock_ledger() / set_stock_ledger() to swap implementations:
- InMemoryStockLedger over the in-memory catalog (default)
- SqlStockLedger when books live in a relational database
"""

from bookorders.catalog import get_catalog
from bookorders.catalog.memory_adapter import InMemoryCatalog
from bookorders.stock.memory_adapter import InMemoryStockLedger
from bookorders.stock.port import StockLedger

_current_ledger: StockLedger | None = None


def get_stock_ledger() -> StockLedger:
    """Return the current stock ledger. Defaults to one over the in-memory catalog."""
    global _current_ledger
    if _current_ledger is None:
        catalog = get_catalog()
        if not isinstance(catalog, InMemoryCatalog):
            raise RuntimeError("No stock ledger configured for a non in-memory catalog; call set_stock_ledger()")
        _current_ledger = InMemoryStockLedger(catalog)
    return _current_ledger


def set_stock_ledger(ledger: StockLedger) -> None:
    """Override the active stock ledger (useful for tests)."""
    global _current_ledger
    _current_ledger = ledger


def reset_stock_ledger() -> None:
    """Reset to default ledger."""
    global _current_ledger
    _current_ledger = None
