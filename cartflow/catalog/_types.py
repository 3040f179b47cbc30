"""
Catalog types.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto
from types import MappingProxyType
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Product Metadata
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProductInfo:
    """Product attributes the checkout engine needs from the catalog."""

    product_id: str
    store_id: str | None = None
    store_name: str | None = None
    weight_kg: float | None = None
    origin_district_code: str | None = None
    origin_ward_code: str | None = None
    name: str = ""
    list_price: int | None = None


class CatalogLookup(Protocol):
    """
    Catalog lookup service.

    Raises on transport failure or unknown product; the cache folds both
    into "unavailable".
    """

    async def get_by_id(self, product_id: str) -> ProductInfo:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol — Users Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class Tier[T](Protocol):
    """
    Lookaside tier consulted before the catalog service.

    Implement this for shared backends (Redis, Memcached, etc.)

    Example:
        class RedisTier[T]:
            def __init__(self, client: Redis, ttl: int | None = None):
                self.client = client
                self.ttl = ttl

            @property
            def name(self) -> str:
                return "redis"

            async def get(self, key: str) -> T | None:
                data = await self.client.get(key)
                return pickle.loads(data) if data else None

            async def set(self, key: str, value: T) -> None:
                await self.client.set(key, pickle.dumps(value), ex=self.ttl)
    """

    @property
    def name(self) -> str:
        """Tier name for debugging."""
        ...

    async def get(self, key: str) -> T | None:
        """Get value. Returns None on miss."""
        ...

    async def set(self, key: str, value: T) -> None:
        """Set value."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Local Tier — In-Memory, Merge-Only
# ═══════════════════════════════════════════════════════════════════════════════


class LocalTier[T]:
    """
    In-memory tier. Entries are merged in, never dropped.

    Example:
        tier = LocalTier[ProductInfo]()
    """

    def __init__(self) -> None:
        self._entries: dict[str, T] = {}

    @property
    def name(self) -> str:
        return "local"

    async def get(self, key: str) -> T | None:
        return self._entries.get(key)

    async def set(self, key: str, value: T) -> None:
        self._entries[key] = value

    def merge(self, entries: Mapping[str, T]) -> None:
        self._entries.update(entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def snapshot(self) -> Mapping[str, T]:
        return MappingProxyType(dict(self._entries))


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache lookup result with metadata."""

    value: T
    hit: bool
    tier: str | None
    coalesced: bool = False


class CatalogErrorKind(Enum):
    """Catalog error kinds."""

    NOT_FOUND = auto()
    TRANSPORT = auto()


@dataclass(frozen=True, slots=True)
class CatalogError:
    """Catalog lookup error."""

    kind: CatalogErrorKind
    product_id: str
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "ProductInfo",
    "CatalogLookup",
    "Tier",
    "LocalTier",
    "CacheResult",
    "CatalogError",
    "CatalogErrorKind",
)
