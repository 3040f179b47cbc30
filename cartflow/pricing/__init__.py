"""
Pricing — platform discounts, shop vouchers, validation, campaigns.

    from cartflow import pricing as P

    match P.apply_voucher(bindings, voucher, P.VoucherScope.PRODUCT, "p-1", lines, snapshot, now):
        case Ok(bindings):
            ...
        case Error(conflict):
            print(conflict.message)

    checked = P.validate(bindings, lines, snapshot, view)
    totals = P.compute_totals(lines, checked.bindings, shipping_fee)
"""

from __future__ import annotations

from cartflow.pricing._types import (
    DiscountKind,
    VoucherScope,
    Voucher,
    AppliedVoucher,
    PlatformVoucherInfo,
    ConflictKind,
    VoucherConflict,
    RevocationReason,
    Revocation,
    Totals,
    VoucherCatalogView,
)
from cartflow.pricing._discount import (
    platform_discount,
    total_platform_discount,
    voucher_discount,
    subtotal_at_original,
    compute_totals,
)
from cartflow.pricing._bindings import (
    VoucherBindings,
    owning_store,
    holder_label,
    apply_voucher,
)
from cartflow.pricing._validate import ValidationPass, catalog_complete, validate
from cartflow.pricing._campaign import (
    CampaignVoucher,
    PlatformCampaign,
    ProductVoucherListing,
    StoreWideListing,
    VoucherCatalog,
    is_active,
    campaign_discount,
    resolve_platform_info,
    load_voucher_catalog,
    PlatformResolver,
    LivePlatformResolver,
)

__all__ = (
    # Types
    "DiscountKind",
    "VoucherScope",
    "Voucher",
    "AppliedVoucher",
    "PlatformVoucherInfo",
    "ConflictKind",
    "VoucherConflict",
    "RevocationReason",
    "Revocation",
    "Totals",
    "VoucherCatalogView",
    # Discounts
    "platform_discount",
    "total_platform_discount",
    "voucher_discount",
    "subtotal_at_original",
    "compute_totals",
    # Bindings
    "VoucherBindings",
    "owning_store",
    "holder_label",
    "apply_voucher",
    # Validation
    "ValidationPass",
    "catalog_complete",
    "validate",
    # Campaigns
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
