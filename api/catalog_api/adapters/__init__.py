"""Adapters for catalog storage: in-memory (dev/tests) and SQLAlchemy (PostgreSQL)."""

from catalog_api.adapters.catalog_store import CatalogStore, InMemoryCatalogStore
from catalog_api.adapters.sql_store import SqlCatalogStore

__all__ = ["CatalogStore", "InMemoryCatalogStore", "SqlCatalogStore"]
