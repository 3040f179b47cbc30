"""
Platform campaigns — which campaign voucher a product's price reflects.

The cart already applied the campaign price. This module only works out the
campaign voucher reference that has to be re-asserted at submission, and loads
the voucher catalog for the current cart in one fan-out.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from combinators import parallel
from kungfu import Error, Ok

from cartflow._types import Clock, Money, Settled
from cartflow.cart import CartLine, ItemKind
from cartflow.catalog import ProductInfo
from cartflow.lift import from_awaitable, settled
from cartflow.pricing._discount import round_half_up
from cartflow.pricing._types import (
    DiscountKind,
    PlatformVoucherInfo,
    Voucher,
    VoucherCatalogView,
)

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"
OPEN_SLOT_STATUSES = frozenset({"OPEN", "ACTIVE"})

# ═══════════════════════════════════════════════════════════════════════════════
# Campaign Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CampaignVoucher:
    """
    One voucher entry inside a platform campaign.

    Flash-sale entries also carry a slot window and slot status.
    """

    voucher_id: str
    kind: DiscountKind
    status: str = ACTIVE
    discount_value: Money | None = None
    discount_percent: float | None = None
    max_discount_value: Money | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    slot_opens_at: datetime | None = None
    slot_closes_at: datetime | None = None
    slot_status: str | None = None

    @property
    def is_flash_slot(self) -> bool:
        return self.slot_status is not None or self.slot_opens_at is not None or self.slot_closes_at is not None


@dataclass(frozen=True, slots=True)
class PlatformCampaign:
    campaign_id: str
    status: str = ACTIVE
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    vouchers: tuple[CampaignVoucher, ...] = ()
    name: str = ""


@dataclass(frozen=True, slots=True)
class ProductVoucherListing:
    """What the voucher catalog returns for one product."""

    product_id: str
    shop_vouchers: tuple[Voucher, ...] = ()
    campaigns: tuple[PlatformCampaign, ...] = ()
    list_price: Money | None = None


class VoucherCatalog(Protocol):
    """Voucher catalog service. Raises on transport failure."""

    async def get_for_product(self, product_id: str) -> ProductVoucherListing:
        ...

    async def get_store_wide(self, store_id: str) -> Sequence[Voucher]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Activity & Discount
# ═══════════════════════════════════════════════════════════════════════════════


def _within(now: datetime, start: datetime | None, end: datetime | None) -> bool:
    return (start is None or start <= now) and (end is None or now <= end)


def is_active(voucher: CampaignVoucher, campaign: PlatformCampaign, now: datetime) -> bool:
    if campaign.status != ACTIVE or voucher.status != ACTIVE:
        return False
    if not _within(now, campaign.starts_at, campaign.ends_at):
        return False
    if not _within(now, voucher.starts_at, voucher.ends_at):
        return False
    if voucher.is_flash_slot:
        if voucher.slot_status not in OPEN_SLOT_STATUSES:
            return False
        return _within(now, voucher.slot_opens_at, voucher.slot_closes_at)
    return True


def campaign_discount(voucher: CampaignVoucher, list_price: Money | None) -> Money:
    """Per-unit discount a campaign voucher gives against a product's list price."""
    match voucher.kind:
        case DiscountKind.FIXED:
            return voucher.discount_value or 0
        case DiscountKind.PERCENT:
            if not list_price:
                return 0
            amount = round_half_up(Decimal(list_price) * Decimal(str(voucher.discount_percent or 0)) / 100)
            if voucher.max_discount_value is not None:
                return min(amount, voucher.max_discount_value)
            return amount


def resolve_platform_info(
    product_id: str,
    listing: ProductVoucherListing | None,
    line: CartLine | None,
    now: datetime,
    list_price: Money | None = None,
) -> PlatformVoucherInfo:
    """
    First active voucher of the first active campaign wins.

    When nothing is active but the cart still flags the line as in-campaign
    (and not over its usage limit), the first voucher entry of any campaign
    is used, with no discount attached.
    """
    eligible = line is not None and line.in_platform_campaign and not line.campaign_usage_exceeded
    campaigns = listing.campaigns if listing is not None else ()
    price = list_price if list_price is not None else (listing.list_price if listing is not None else None)

    for campaign in campaigns:
        for voucher in campaign.vouchers:
            if is_active(voucher, campaign, now):
                return PlatformVoucherInfo(
                    product_id=product_id,
                    campaign_voucher_id=voucher.voucher_id,
                    discount=campaign_discount(voucher, price),
                    in_campaign=eligible,
                )

    if eligible:
        for campaign in campaigns:
            if campaign.vouchers:
                fallback = campaign.vouchers[0]
                logger.warning(
                    "no active campaign voucher for %s; using %s from campaign %s",
                    product_id,
                    fallback.voucher_id,
                    campaign.campaign_id,
                )
                return PlatformVoucherInfo(
                    product_id=product_id,
                    campaign_voucher_id=fallback.voucher_id,
                    discount=0,
                    in_campaign=True,
                )

    return PlatformVoucherInfo(product_id=product_id, campaign_voucher_id=None, discount=0, in_campaign=eligible)


# ═══════════════════════════════════════════════════════════════════════════════
# Loading the Voucher Catalog
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreWideListing:
    """What the voucher catalog returns for one store."""

    store_id: str
    vouchers: tuple[Voucher, ...] = ()


type Listing = ProductVoucherListing | StoreWideListing


def _listing(service: VoucherCatalog, product_id: str) -> Settled[Listing]:
    async def fetch() -> Listing:
        return await service.get_for_product(product_id)

    def degrade(e: Exception) -> Listing:
        logger.warning("voucher listing unavailable for %s: %s", product_id, e)
        return ProductVoucherListing(product_id=product_id)

    return settled(from_awaitable(fetch, on_error=lambda e: e), degrade)


def _store_wide(service: VoucherCatalog, store_id: str) -> Settled[Listing]:
    async def fetch() -> Listing:
        return StoreWideListing(store_id, tuple(await service.get_store_wide(store_id)))

    def degrade(e: Exception) -> Listing:
        logger.warning("store-wide vouchers unavailable for %s: %s", store_id, e)
        return StoreWideListing(store_id)

    return settled(from_awaitable(fetch, on_error=lambda e: e), degrade)


async def load_voucher_catalog(
    service: VoucherCatalog,
    lines: Iterable[CartLine],
    catalog: Mapping[str, ProductInfo],
    store_ids: Iterable[str],
    now: datetime,
) -> VoucherCatalogView:
    """
    Fetch every product listing and every store's store-wide vouchers at once.

    Product and store fetches share one join; none waits for another.
    Failed fetches degrade to empty lists; the view is always `loaded`.
    """
    lines = tuple(lines)
    product_ids = list(dict.fromkeys(line.product_id for line in lines if line.kind is not ItemKind.COMBO))
    stores = list(dict.fromkeys(store_ids))

    fetches = [
        *(_listing(service, pid) for pid in product_ids),
        *(_store_wide(service, sid) for sid in stores),
    ]
    fetched: list[Listing] = []
    if fetches:
        match await parallel(*fetches):
            case Ok(found):
                fetched = list(found)

    listings = [f for f in fetched if isinstance(f, ProductVoucherListing)]
    store_wide = {f.store_id: f.vouchers for f in fetched if isinstance(f, StoreWideListing)}

    by_product = {line.product_id: line for line in lines}
    platform = {
        listing.product_id: resolve_platform_info(
            listing.product_id,
            listing,
            by_product.get(listing.product_id),
            now,
            list_price=_list_price(listing, catalog),
        )
        for listing in listings
    }
    return VoucherCatalogView(
        loaded=True,
        shop_vouchers={listing.product_id: listing.shop_vouchers for listing in listings},
        store_wide=store_wide,
        platform=platform,
    )


def _list_price(listing: ProductVoucherListing, catalog: Mapping[str, ProductInfo]) -> Money | None:
    if listing.list_price is not None:
        return listing.list_price
    info = catalog.get(listing.product_id)
    return info.list_price if info is not None else None


type PlatformResolver = Callable[[str], Awaitable[PlatformVoucherInfo | None]]
"""Resolves campaign info for a product id live; None when unavailable."""


@dataclass(slots=True)
class LivePlatformResolver:
    """
    Resolve platform info straight from the voucher catalog.

    Used at submission for products whose info was never loaded.
    """

    service: VoucherCatalog
    lines: Sequence[CartLine]
    catalog: Mapping[str, ProductInfo]
    clock: Clock

    async def __call__(self, product_id: str) -> PlatformVoucherInfo | None:
        fetched = await from_awaitable(lambda: self.service.get_for_product(product_id), on_error=lambda e: e)
        match fetched:
            case Ok(listing):
                line = next((ln for ln in self.lines if ln.product_id == product_id), None)
                return resolve_platform_info(
                    product_id, listing, line, self.clock(), list_price=_list_price(listing, self.catalog)
                )
            case Error(e):
                logger.warning("live campaign lookup failed for %s: %s", product_id, e)
                return None


__all__ = (
    "CampaignVoucher",
    "PlatformCampaign",
    "ProductVoucherListing",
    "StoreWideListing",
    "VoucherCatalog",
    "is_active",
    "campaign_discount",
    "resolve_platform_info",
    "load_voucher_catalog",
    "PlatformResolver",
    "LivePlatformResolver",
)
