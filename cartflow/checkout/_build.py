"""
Checkout payload assembly.

Items get exactly one identity. Product-scoped and store-wide voucher codes
are merged per store. Campaign vouchers are re-asserted with quantities summed
per campaign voucher id.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from combinators import parallel
from kungfu import LazyCoroResult, Ok, Result

from cartflow._types import NoError, Settled
from cartflow.cart import CartLine, ItemKind, StoreGroup
from cartflow.catalog import ProductInfo
from cartflow.checkout._types import (
    CheckoutItem,
    CheckoutPayload,
    ComboItem,
    PaymentOptions,
    PlatformVoucherLine,
    ProductItem,
    StoreVoucherCodes,
    VariantItem,
)
from cartflow.pricing import PlatformResolver, PlatformVoucherInfo, VoucherBindings
from cartflow.shipping import DEFAULT_ITEM_WEIGHT_KG, LIGHT_MAX_GRAMS, service_tiers

logger = logging.getLogger(__name__)


def checkout_item(line: CartLine) -> CheckoutItem:
    if line.kind is ItemKind.COMBO:
        return ComboItem(combo_id=line.combo_id or line.product_id, quantity=line.quantity)
    if line.variant_id is not None:
        return VariantItem(variant_id=line.variant_id, quantity=line.quantity, product_id=line.product_id)
    return ProductItem(product_id=line.product_id, quantity=line.quantity)


def store_voucher_codes(bindings: VoucherBindings) -> tuple[StoreVoucherCodes, ...]:
    """Product-scoped codes first, then store-wide, grouped by store in first-seen order."""
    codes: dict[str, list[str]] = {}
    for applied in bindings.all():
        if applied.store_id is None:
            continue
        codes.setdefault(applied.store_id, []).append(applied.code)
    return tuple(StoreVoucherCodes(store_id=sid, codes=tuple(found)) for sid, found in codes.items())


def _qualifies(info: PlatformVoucherInfo | None, line: CartLine) -> bool:
    if info is not None and (info.discount > 0 or info.in_campaign):
        return True
    return line.in_platform_campaign and not line.campaign_usage_exceeded


def _resolve(resolver: PlatformResolver, product_id: str) -> Settled[tuple[str, PlatformVoucherInfo | None]]:
    async def run() -> Result[tuple[str, PlatformVoucherInfo | None], NoError]:
        return Ok((product_id, await resolver(product_id)))

    return LazyCoroResult(run)


async def platform_voucher_lines(
    lines: Iterable[CartLine],
    platform_info: Mapping[str, PlatformVoucherInfo],
    resolver: PlatformResolver | None = None,
) -> tuple[PlatformVoucherLine, ...]:
    """
    Campaign voucher lines for the submitted items.

    Products whose cached info has no campaign voucher id are resolved live,
    all at once, before quantities are summed.
    """
    lines = tuple(line for line in lines if line.selected)
    items = [(line, checkout_item(line)) for line in lines]

    known: dict[str, PlatformVoucherInfo] = dict(platform_info)
    unresolved = list(
        dict.fromkeys(
            pid
            for line, item in items
            if (pid := item.campaign_product_id) is not None
            and _qualifies(known.get(pid), line)
            and (known.get(pid) is None or known[pid].campaign_voucher_id is None)
        )
    )
    if unresolved and resolver is not None:
        match await parallel(*[_resolve(resolver, pid) for pid in unresolved]):
            case Ok(resolved):
                known.update({pid: info for pid, info in resolved if info is not None})

    quantities: dict[str, int] = {}
    for line, item in items:
        pid = item.campaign_product_id
        if pid is None:
            continue
        info = known.get(pid)
        if info is None or info.campaign_voucher_id is None or not _qualifies(info, line):
            continue
        quantities[info.campaign_voucher_id] = quantities.get(info.campaign_voucher_id, 0) + item.quantity

    return tuple(PlatformVoucherLine(campaign_voucher_id=vid, quantity=qty) for vid, qty in quantities.items())


async def build_payload(
    lines: Iterable[CartLine],
    groups: Iterable[StoreGroup],
    catalog: Mapping[str, ProductInfo],
    bindings: VoucherBindings,
    platform_info: Mapping[str, PlatformVoucherInfo],
    *,
    address_id: str,
    payment: PaymentOptions,
    message: str | None = None,
    resolver: PlatformResolver | None = None,
    default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
    light_max: int = LIGHT_MAX_GRAMS,
) -> CheckoutPayload:
    """
    Assemble the order payload from the selected lines.

    Service tiers are sent only for stores the catalog resolved.
    """
    selected = tuple(line for line in lines if line.selected)
    payload = CheckoutPayload(
        items=tuple(checkout_item(line) for line in selected),
        address_id=address_id,
        store_vouchers=store_voucher_codes(bindings),
        platform_vouchers=await platform_voucher_lines(selected, platform_info, resolver),
        service_tiers=service_tiers(groups, catalog, default_kg=default_kg, light_max=light_max, resolved_only=True),
        payment=payment,
        message=message or None,
    )
    logger.debug(
        "payload built: %d item(s), %d store voucher group(s), %d campaign line(s)",
        len(payload.items),
        len(payload.store_vouchers),
        len(payload.platform_vouchers),
    )
    return payload


__all__ = (
    "checkout_item",
    "store_voucher_codes",
    "platform_voucher_lines",
    "build_payload",
)
