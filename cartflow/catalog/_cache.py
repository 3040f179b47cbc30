"""
Catalog cache — fluent builder, coalesced lookups, merge-on-write arena.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

from combinators import parallel
from kungfu import Error, LazyCoroResult, Ok, Result

from cartflow._types import NoError, Settled
from cartflow.catalog._types import (
    CacheResult,
    CatalogError,
    CatalogErrorKind,
    CatalogLookup,
    LocalTier,
    ProductInfo,
    Tier,
)
from cartflow.lift import from_awaitable

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Catalog:
    """
    Fluent catalog cache builder.

    Example:
        products = (
            catalog(lookup)
            .tier(RedisTier(client))
            .build()
        )
    """

    _lookup: CatalogLookup
    _tiers: tuple[Tier[ProductInfo], ...]

    def tier(self, t: Tier[ProductInfo]) -> Catalog:
        """Add a lookaside tier, consulted in order before the lookup service."""
        return Catalog(_lookup=self._lookup, _tiers=(*self._tiers, t))

    def build(self) -> CatalogCache:
        return CatalogCache(lookup=self._lookup, tiers=self._tiers)


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Cache
# ═══════════════════════════════════════════════════════════════════════════════


class CatalogCache:
    """
    Shared product-metadata cache.

    Reads go through an in-process arena that is only ever merged into.
    A missing id is fetched once; callers asking for the same id while that
    fetch is in flight await the same task.
    """

    def __init__(
        self,
        lookup: CatalogLookup,
        tiers: tuple[Tier[ProductInfo], ...] = (),
    ) -> None:
        self._lookup = lookup
        self._tiers = tiers
        self._arena = LocalTier[ProductInfo]()
        self._inflight: dict[str, asyncio.Future[Result[CacheResult[ProductInfo], CatalogError]]] = {}

    def snapshot(self) -> Mapping[str, ProductInfo]:
        """Immutable view of every entry resolved so far."""
        return self._arena.snapshot()

    def merge(self, entries: Mapping[str, ProductInfo]) -> None:
        self._arena.merge(entries)

    def is_complete(self, product_ids: Iterable[str]) -> bool:
        return all(pid in self._arena for pid in product_ids)

    def get(self, product_id: str) -> LazyCoroResult[CacheResult[ProductInfo], CatalogError]:
        """
        Get product metadata.

        Tries the arena, joins an in-flight fetch if one exists, otherwise
        starts one (tiers, then the lookup service).
        """

        async def execute() -> Result[CacheResult[ProductInfo], CatalogError]:
            cached = await self._arena.get(product_id)
            if cached is not None:
                return Ok(CacheResult(value=cached, hit=True, tier=self._arena.name))

            pending = self._inflight.get(product_id)
            if pending is not None:
                logger.debug("catalog fetch coalesced: %s", product_id)
                match await asyncio.shield(pending):
                    case Ok(found):
                        return Ok(replace(found, coalesced=True))
                    case Error(e):
                        return Error(e)

            pending = asyncio.ensure_future(self._load(product_id))
            self._inflight[product_id] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(product_id, None))
            return await asyncio.shield(pending)

        return LazyCoroResult(execute)

    async def resolve(self, product_ids: Iterable[str]) -> Mapping[str, ProductInfo]:
        """
        Resolve every missing id in parallel and return the merged snapshot.

        Failed lookups are logged and left out; they never raise.
        """
        missing = [pid for pid in dict.fromkeys(product_ids) if pid not in self._arena]
        if missing:
            await parallel(*[self._settle(pid) for pid in missing])
        return self.snapshot()

    def _settle(self, product_id: str) -> Settled[bool]:
        async def run() -> Result[bool, NoError]:
            match await self.get(product_id):
                case Ok(_):
                    return Ok(True)
                case Error(e):
                    logger.warning("catalog unavailable for %s: %s", e.product_id, e.message)
                    return Ok(False)

        return LazyCoroResult(run)

    async def _load(self, product_id: str) -> Result[CacheResult[ProductInfo], CatalogError]:
        for t in self._tiers:
            try:
                value = await t.get(product_id)
            except Exception:
                logger.debug("tier %s failed for %s", t.name, product_id, exc_info=True)
                continue
            if value is not None:
                self._arena.merge({product_id: value})
                return Ok(CacheResult(value=value, hit=True, tier=t.name))

        fetched = await from_awaitable(
            lambda: self._lookup.get_by_id(product_id),
            on_error=lambda e: _catalog_error(product_id, e),
        )
        match fetched:
            case Ok(value):
                for t in self._tiers:
                    try:
                        await t.set(product_id, value)
                    except Exception:
                        logger.debug("tier %s not populated for %s", t.name, product_id, exc_info=True)
                self._arena.merge({product_id: value})
                return Ok(CacheResult(value=value, hit=False, tier=None))
            case Error(e):
                return Error(e)


def _catalog_error(product_id: str, exc: Exception) -> CatalogError:
    kind = CatalogErrorKind.NOT_FOUND if isinstance(exc, LookupError) else CatalogErrorKind.TRANSPORT
    return CatalogError(kind=kind, product_id=product_id, message=str(exc) or type(exc).__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# catalog() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def catalog(lookup: CatalogLookup) -> Catalog:
    """
    Create a catalog cache builder around a lookup service.

    Example:
        from cartflow import catalog as K

        products = K.catalog(lookup).build()
        snapshot = await products.resolve(["p-1", "p-2"])
    """
    return Catalog(_lookup=lookup, _tiers=())


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("Catalog", "CatalogCache", "catalog")
