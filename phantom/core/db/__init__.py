"""Catalog persistence.

All mixins compose into the CatalogStore class via multiple inheritance.
The MRO ensures ConnectionBase.__init__ runs first, then
SchemaMixin._ensure_schema() creates the schema.
"""

from __future__ import annotations

from phantom.core.db.catalog_queries import CatalogQueryMixin
from phantom.core.db.connection import ConnectionBase
from phantom.core.db.migration import MigrationMixin, groups_from_legacy
from phantom.core.db.schema import SchemaMixin

__all__ = ["CatalogStore", "groups_from_legacy"]


class CatalogStore(
    SchemaMixin,
    CatalogQueryMixin,
    MigrationMixin,
    ConnectionBase,
):
    """SQLite-backed catalog composing all query mixins."""

    pass
