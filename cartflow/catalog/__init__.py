"""
Catalog — product metadata cache shared by grouping, pricing and shipping.

    from cartflow import catalog as K

    products = K.catalog(lookup).build()
    snapshot = await products.resolve(product_ids)
"""

from __future__ import annotations

from cartflow.catalog._types import (
    ProductInfo,
    CatalogLookup,
    Tier,
    LocalTier,
    CacheResult,
    CatalogError,
    CatalogErrorKind,
)
from cartflow.catalog._cache import catalog, Catalog, CatalogCache

__all__ = (
    "ProductInfo",
    "CatalogLookup",
    "Tier",
    "LocalTier",
    "CacheResult",
    "CatalogError",
    "CatalogErrorKind",
    "catalog",
    "Catalog",
    "CatalogCache",
)
