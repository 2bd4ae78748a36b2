# Catalog Module
"""
Adapter over the external inventory catalog.

Normalizes product payloads into InventoryRecord and provides the synthetic
fallback catalog used in degraded mode.
"""

from .accessor import (
    CatalogAccessor,
    HttpCatalogAccessor,
    InventoryRecord,
    generate_synthetic_catalog,
    record_from_payload,
    records_from_payload,
)

__all__ = [
    'CatalogAccessor',
    'HttpCatalogAccessor',
    'InventoryRecord',
    'generate_synthetic_catalog',
    'record_from_payload',
    'records_from_payload',
]
