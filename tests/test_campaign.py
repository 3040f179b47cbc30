"""Platform campaign resolution and voucher catalog loading."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from cartflow.cart import CartLine
from cartflow.catalog import ProductInfo
from cartflow.pricing import (
    CampaignVoucher,
    DiscountKind,
    LivePlatformResolver,
    PlatformCampaign,
    ProductVoucherListing,
    campaign_discount,
    is_active,
    load_voucher_catalog,
    resolve_platform_info,
)

from .conftest import NOW, FakeVoucherCatalog, fixed_clock, fixed_voucher, line, percent_voucher

HOUR = timedelta(hours=1)


def campaign(*vouchers: CampaignVoucher, status: str = "ACTIVE") -> PlatformCampaign:
    return PlatformCampaign("CAMP-1", status=status, vouchers=vouchers)


class TestIsActive:
    """Campaign and voucher activity windows."""

    def test_plain_active_voucher(self) -> None:
        voucher = CampaignVoucher("V1", DiscountKind.FIXED, discount_value=1_000)

        assert is_active(voucher, campaign(voucher), NOW)

    def test_inactive_campaign(self) -> None:
        voucher = CampaignVoucher("V1", DiscountKind.FIXED)

        assert not is_active(voucher, campaign(voucher, status="ENDED"), NOW)

    def test_voucher_window(self) -> None:
        voucher = CampaignVoucher("V1", DiscountKind.FIXED, starts_at=NOW + HOUR)

        assert not is_active(voucher, campaign(voucher), NOW)

    @pytest.mark.parametrize(
        ("slot_status", "opens", "closes", "expected"),
        [
            ("OPEN", NOW - HOUR, NOW + HOUR, True),
            ("ACTIVE", NOW - HOUR, NOW + HOUR, True),
            ("CLOSED", NOW - HOUR, NOW + HOUR, False),
            ("OPEN", NOW + HOUR, NOW + 2 * HOUR, False),
            ("OPEN", NOW - 2 * HOUR, NOW - HOUR, False),
        ],
    )
    def test_flash_slot(self, slot_status: str, opens: object, closes: object, expected: bool) -> None:
        voucher = CampaignVoucher(
            "V1",
            DiscountKind.FIXED,
            slot_status=slot_status,
            slot_opens_at=opens,  # type: ignore[arg-type]
            slot_closes_at=closes,  # type: ignore[arg-type]
        )

        assert is_active(voucher, campaign(voucher), NOW) is expected


class TestResolvePlatformInfo:
    """Which campaign voucher a product's price reflects."""

    def test_first_active_voucher_wins(self) -> None:
        dead = CampaignVoucher("V-DEAD", DiscountKind.FIXED, status="PAUSED")
        live = CampaignVoucher("V-LIVE", DiscountKind.FIXED, discount_value=5_000)
        later = CampaignVoucher("V-LATER", DiscountKind.FIXED, discount_value=9_000)
        listing = ProductVoucherListing("P3", campaigns=(campaign(dead, live, later),))
        item = line("L3", "P3", 1, 45_000, in_platform_campaign=True)

        info = resolve_platform_info("P3", listing, item, NOW)

        assert info.campaign_voucher_id == "V-LIVE"
        assert info.discount == 5_000
        assert info.in_campaign

    def test_percent_discount_against_list_price(self) -> None:
        voucher = CampaignVoucher("V1", DiscountKind.PERCENT, discount_percent=20, max_discount_value=8_000)

        assert campaign_discount(voucher, 30_000) == 6_000
        assert campaign_discount(voucher, 100_000) == 8_000
        assert campaign_discount(voucher, None) == 0

    def test_fallback_when_nothing_is_active(self, caplog: pytest.LogCaptureFixture) -> None:
        paused = CampaignVoucher("V-PAUSED", DiscountKind.FIXED, status="PAUSED", discount_value=5_000)
        listing = ProductVoucherListing("P3", campaigns=(campaign(paused),))
        item = line("L3", "P3", 1, 45_000, in_platform_campaign=True)

        with caplog.at_level(logging.WARNING, logger="cartflow.pricing"):
            info = resolve_platform_info("P3", listing, item, NOW)

        assert info.campaign_voucher_id == "V-PAUSED"
        assert info.discount == 0
        assert info.in_campaign
        assert any("no active campaign voucher" in r.getMessage() for r in caplog.records)

    def test_no_fallback_when_usage_exceeded(self) -> None:
        paused = CampaignVoucher("V-PAUSED", DiscountKind.FIXED, status="PAUSED")
        listing = ProductVoucherListing("P3", campaigns=(campaign(paused),))
        item = line("L3", "P3", 1, 45_000, in_platform_campaign=True, campaign_usage_exceeded=True)

        info = resolve_platform_info("P3", listing, item, NOW)

        assert info.campaign_voucher_id is None
        assert not info.in_campaign

    def test_no_listing(self) -> None:
        info = resolve_platform_info("P1", None, None, NOW)

        assert info.campaign_voucher_id is None
        assert info.discount == 0


class TestLoadVoucherCatalog:
    """One fan-out for every product listing and store-wide list."""

    async def test_loads_everything(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo]
    ) -> None:
        service = FakeVoucherCatalog(
            listings={"P1": ProductVoucherListing("P1", shop_vouchers=(percent_voucher(),))},
            store_wide={"S2": (fixed_voucher("CUPS5", store_id="S2"),)},
        )

        view = await load_voucher_catalog(service, cart_lines, products, ["S1", "S2"], NOW)

        assert view.loaded
        assert sorted(service.product_calls) == ["P1", "P2", "P3"]
        assert view.shop_vouchers["P1"][0].code == "TEA10"
        assert view.store_wide["S2"][0].code == "CUPS5"
        assert set(view.platform) == {"P1", "P2", "P3"}

    async def test_failures_degrade_to_empty(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo]
    ) -> None:
        service = FakeVoucherCatalog(
            listings={"P2": ProductVoucherListing("P2", shop_vouchers=(percent_voucher(),))},
            failing_products={"P1"},
            failing_stores={"S1"},
        )

        view = await load_voucher_catalog(service, cart_lines, products, ["S1"], NOW)

        assert view.loaded
        assert view.shop_vouchers["P1"] == ()
        assert view.shop_vouchers["P2"][0].code == "TEA10"
        assert view.store_wide["S1"] == ()

    async def test_product_and_store_fetches_overlap(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo]
    ) -> None:
        service = FakeVoucherCatalog(delay=0.01)

        await load_voucher_catalog(service, cart_lines, products, ["S1", "S2"], NOW)

        assert service.peak == 5

    async def test_empty_cart(self) -> None:
        view = await load_voucher_catalog(FakeVoucherCatalog(), [], {}, [], NOW)

        assert view.loaded
        assert view.distinct_shop_vouchers() == ()


class TestLivePlatformResolver:
    """Live campaign lookups at submission time."""

    async def test_resolves_from_service(self, cart_lines: list[CartLine], products: dict[str, ProductInfo]) -> None:
        voucher = CampaignVoucher("PV-CUP", DiscountKind.FIXED, discount_value=5_000)
        service = FakeVoucherCatalog(listings={"P3": ProductVoucherListing("P3", campaigns=(campaign(voucher),))})
        resolver = LivePlatformResolver(service, cart_lines, products, fixed_clock)

        info = await resolver("P3")

        assert info is not None
        assert info.campaign_voucher_id == "PV-CUP"

    async def test_failure_returns_none(self, cart_lines: list[CartLine], products: dict[str, ProductInfo]) -> None:
        resolver = LivePlatformResolver(FakeVoucherCatalog(failing_products={"P3"}), cart_lines, products, fixed_clock)

        assert await resolver("P3") is None
