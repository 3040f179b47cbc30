"""
Pricing types — vouchers, bindings' members, conflicts, revocations, totals.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from types import MappingProxyType

from cartflow._types import Money

# ═══════════════════════════════════════════════════════════════════════════════
# Vouchers
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountKind(Enum):
    FIXED = "FIXED"
    PERCENT = "PERCENT"


class VoucherScope(Enum):
    PRODUCT = "PRODUCT"
    STORE_WIDE = "STORE_WIDE"


@dataclass(frozen=True, slots=True)
class Voucher:
    """
    Shop voucher descriptor as the voucher catalog returns it.

    `max_discount_value` only applies to PERCENT vouchers.
    A missing window bound means open-ended on that side.
    """

    code: str
    kind: DiscountKind
    scope: VoucherScope
    discount_value: Money | None = None
    discount_percent: float | None = None
    max_discount_value: Money | None = None
    min_order_value: Money | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    store_id: str | None = None
    title: str = ""

    def is_within_window(self, now: datetime) -> bool:
        if self.starts_at is not None and now < self.starts_at:
            return False
        if self.ends_at is not None and now > self.ends_at:
            return False
        return True


@dataclass(frozen=True, slots=True)
class AppliedVoucher:
    """A voucher bound to a scope key, with the discount computed at binding time."""

    scope_key: str
    scope: VoucherScope
    voucher: Voucher
    store_id: str | None
    discount: Money

    @property
    def code(self) -> str:
        return self.voucher.code


@dataclass(frozen=True, slots=True)
class PlatformVoucherInfo:
    """
    Campaign reference for a product whose unit price the cart already discounted.

    Only used to re-assert the campaign voucher at submission.
    """

    product_id: str
    campaign_voucher_id: str | None
    discount: Money
    in_campaign: bool


# ═══════════════════════════════════════════════════════════════════════════════
# Conflicts & Revocations
# ═══════════════════════════════════════════════════════════════════════════════


class ConflictKind(Enum):
    CODE_IN_USE = auto()
    BELOW_MINIMUM = auto()
    NOT_ACTIVE = auto()
    UNKNOWN_STORE = auto()
    UNKNOWN_VOUCHER = auto()


@dataclass(frozen=True, slots=True)
class VoucherConflict:
    """Synchronous rejection of a voucher application. Nothing was mutated."""

    kind: ConflictKind
    code: str
    scope_key: str
    message: str
    holder: str | None = None


class RevocationReason(Enum):
    NO_LONGER_VALID = auto()
    BASIS_VANISHED = auto()
    BELOW_MINIMUM = auto()


@dataclass(frozen=True, slots=True)
class Revocation:
    """A binding the validator removed, with the message shown for it."""

    code: str
    scope: VoucherScope
    scope_key: str
    reason: RevocationReason
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Totals
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Totals:
    subtotal_at_original: Money
    platform_discount: Money
    voucher_discount: Money
    shipping_fee: Money
    total: Money


# ═══════════════════════════════════════════════════════════════════════════════
# Loaded Voucher Catalog
# ═══════════════════════════════════════════════════════════════════════════════


def _frozen[K, V](entries: Mapping[K, V] | None = None) -> Mapping[K, V]:
    return MappingProxyType(dict(entries or {}))


@dataclass(frozen=True, slots=True)
class VoucherCatalogView:
    """
    What the voucher catalog returned for the current cart.

    `shop_vouchers` is keyed by product id, `store_wide` by store id,
    `platform` by product id. `loaded` stays False until the first full load
    completes; the validator leaves every binding alone until then.
    """

    loaded: bool = False
    shop_vouchers: Mapping[str, tuple[Voucher, ...]] = field(default_factory=_frozen)
    store_wide: Mapping[str, tuple[Voucher, ...]] = field(default_factory=_frozen)
    platform: Mapping[str, PlatformVoucherInfo] = field(default_factory=_frozen)

    @classmethod
    def pending(cls) -> VoucherCatalogView:
        return cls()

    def distinct_shop_vouchers(self) -> tuple[Voucher, ...]:
        """Shop vouchers across all products, first occurrence of each code wins."""
        seen: dict[str, Voucher] = {}
        for vouchers in self.shop_vouchers.values():
            for v in vouchers:
                seen.setdefault(v.code, v)
        return tuple(seen.values())

    def find_shop(self, code: str, store_id: str | None) -> Voucher | None:
        for v in self.distinct_shop_vouchers():
            if v.code == code and (v.store_id is None or store_id is None or v.store_id == store_id):
                return v
        return None

    def find_store_wide(self, code: str, store_id: str) -> Voucher | None:
        for v in self.store_wide.get(store_id, ()):
            if v.code == code:
                return v
        return None

    def find(self, code: str, scope: VoucherScope, store_id: str | None) -> Voucher | None:
        match scope:
            case VoucherScope.PRODUCT:
                return self.find_shop(code, store_id)
            case VoucherScope.STORE_WIDE:
                return self.find_store_wide(code, store_id) if store_id is not None else None


__all__ = (
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
)
