"""Catalog cache tests."""

from __future__ import annotations

import asyncio

import pytest
from kungfu import Error, Ok

from cartflow.catalog import CatalogErrorKind, LocalTier, ProductInfo, catalog

from .conftest import FakeLookup, product


class TestResolve:
    """Batch resolution through the cache."""

    async def test_fetches_each_missing_id_once(self, products: dict[str, ProductInfo]) -> None:
        lookup = FakeLookup(products)
        cache = catalog(lookup).build()

        snapshot = await cache.resolve(["P1", "P2", "P1"])

        assert set(snapshot) == {"P1", "P2"}
        assert lookup.calls == {"P1": 1, "P2": 1}

    async def test_known_ids_are_not_refetched(self, products: dict[str, ProductInfo]) -> None:
        lookup = FakeLookup(products)
        cache = catalog(lookup).build()

        await cache.resolve(["P1"])
        await cache.resolve(["P1", "P3"])

        assert lookup.calls == {"P1": 1, "P3": 1}

    async def test_failures_are_left_out_and_retried_later(self, products: dict[str, ProductInfo]) -> None:
        lookup = FakeLookup(products, failing={"P2"})
        cache = catalog(lookup).build()

        snapshot = await cache.resolve(["P1", "P2", "GHOST"])
        assert set(snapshot) == {"P1"}
        assert not cache.is_complete(["P1", "P2"])

        lookup.failing.clear()
        snapshot = await cache.resolve(["P2"])
        assert "P2" in snapshot
        assert lookup.calls["P2"] == 2

    async def test_snapshot_is_read_only(self, products: dict[str, ProductInfo]) -> None:
        cache = catalog(FakeLookup(products)).build()
        snapshot = await cache.resolve(["P1"])

        with pytest.raises(TypeError):
            snapshot["P9"] = product("P9", "S9")  # type: ignore[index]


class TestGet:
    """Single lookups, coalescing and error kinds."""

    async def test_concurrent_gets_share_one_fetch(self, products: dict[str, ProductInfo]) -> None:
        lookup = FakeLookup(products, delay=0.01)
        cache = catalog(lookup).build()

        first, second = await asyncio.gather(cache.get("P1"), cache.get("P1"))

        assert lookup.calls["P1"] == 1
        coalesced: list[bool] = []
        for result in (first, second):
            match result:
                case Ok(found):
                    coalesced.append(found.coalesced)
                case Error(e):
                    pytest.fail(e.message)
        assert sorted(coalesced) == [False, True]

    async def test_second_get_is_an_arena_hit(self, products: dict[str, ProductInfo]) -> None:
        cache = catalog(FakeLookup(products)).build()
        await cache.get("P1")

        match await cache.get("P1"):
            case Ok(found):
                assert found.hit
                assert found.tier == "local"
            case Error(e):
                pytest.fail(e.message)

    async def test_unknown_product_is_not_found(self, products: dict[str, ProductInfo]) -> None:
        cache = catalog(FakeLookup(products)).build()

        match await cache.get("GHOST"):
            case Ok(_):
                pytest.fail("expected an error")
            case Error(e):
                assert e.kind is CatalogErrorKind.NOT_FOUND
                assert e.product_id == "GHOST"

    async def test_transport_failure(self, products: dict[str, ProductInfo]) -> None:
        cache = catalog(FakeLookup(products, failing={"P1"})).build()

        match await cache.get("P1"):
            case Ok(_):
                pytest.fail("expected an error")
            case Error(e):
                assert e.kind is CatalogErrorKind.TRANSPORT


class TestTiersAndMerge:
    """Lookaside tiers and merge-only writes."""

    async def test_tier_hit_skips_lookup(self, products: dict[str, ProductInfo]) -> None:
        lookup = FakeLookup(products)
        shared = LocalTier[ProductInfo]()
        await shared.set("P1", products["P1"])
        cache = catalog(lookup).tier(shared).build()

        snapshot = await cache.resolve(["P1"])

        assert snapshot["P1"] == products["P1"]
        assert lookup.calls["P1"] == 0

    async def test_lookup_populates_tier(self, products: dict[str, ProductInfo]) -> None:
        shared = LocalTier[ProductInfo]()
        cache = catalog(FakeLookup(products)).tier(shared).build()

        await cache.resolve(["P2"])

        assert await shared.get("P2") == products["P2"]

    async def test_merge_keeps_existing_entries(self, products: dict[str, ProductInfo]) -> None:
        cache = catalog(FakeLookup(products)).build()
        await cache.resolve(["P1"])

        cache.merge({"P9": product("P9", "S9")})

        assert set(cache.snapshot()) == {"P1", "P9"}
        assert cache.is_complete(["P1", "P9"])
