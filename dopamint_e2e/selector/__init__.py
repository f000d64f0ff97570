"""Selector catalog for Dopamint pages."""

from dopamint_e2e.selector.catalog import SelectorCatalog, get_selector_catalog

__all__ = ["SelectorCatalog", "get_selector_catalog"]
