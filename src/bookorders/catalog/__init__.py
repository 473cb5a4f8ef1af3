"""Catalog reader factory.

Provides get_catalog() / set_catalog() to swap implementations:
- InMemoryCatalog for development and testing
- SqlCatalog when the books live in a relational database
"""

from bookorders.catalog.memory_adapter import InMemoryCatalog
from bookorders.catalog.port import CatalogReader

_current_catalog: CatalogReader | None = None


def get_catalog() -> CatalogReader:
    """Return the current catalog reader. Defaults to InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogReader) -> None:
    """Override the active catalog reader (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to default catalog."""
    global _current_catalog
    _current_catalog = None
