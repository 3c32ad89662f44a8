"""Catalog store factory.

Provides get_catalog() / set_catalog() to swap implementations:
- InMemoryCatalogStore for development and testing
- SqlCatalogStore for a relational catalog
"""

from inventory.catalog.fake_adapter import InMemoryCatalogStore
from inventory.catalog.port import CatalogStore

_current_catalog: CatalogStore | None = None


def get_catalog() -> CatalogStore:
    """Return the current catalog store. Defaults to InMemoryCatalogStore."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalogStore()
    return _current_catalog


def set_catalog(catalog: CatalogStore) -> None:
    """Override the active catalog store (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to default catalog store."""
    global _current_catalog
    _current_catalog = None
