"""
Discount arithmetic. Pure, synchronous, integer money.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from cartflow._types import Money
from cartflow.cart import CartLine
from cartflow.pricing._types import DiscountKind, Totals, Voucher

if TYPE_CHECKING:
    from cartflow.pricing._bindings import VoucherBindings


def platform_discount(line: CartLine) -> Money:
    """Campaign discount the cart already baked into `unit_price`."""
    if line.original_unit_price is None:
        return 0
    return max(0, line.original_unit_price - line.unit_price) * line.quantity


def total_platform_discount(lines: Iterable[CartLine]) -> Money:
    return sum((platform_discount(line) for line in lines if line.selected), 0)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def voucher_discount(voucher: Voucher, subtotal: Money) -> Money:
    """
    Discount a voucher yields against a subtotal.

    FIXED is returned as-is, even above the subtotal; the grand total is
    clamped instead. PERCENT is rounded half-up, then capped.
    """
    match voucher.kind:
        case DiscountKind.FIXED:
            return voucher.discount_value or 0
        case DiscountKind.PERCENT:
            percent = Decimal(str(voucher.discount_percent or 0))
            amount = round_half_up(Decimal(subtotal) * percent / 100)
            if voucher.max_discount_value is not None and amount > voucher.max_discount_value:
                return voucher.max_discount_value
            return amount


def subtotal_at_original(lines: Iterable[CartLine]) -> Money:
    return sum(
        (
            (line.original_unit_price if line.original_unit_price is not None else line.unit_price) * line.quantity
            for line in lines
            if line.selected
        ),
        0,
    )


def compute_totals(lines: Iterable[CartLine], bindings: VoucherBindings, shipping_fee: Money) -> Totals:
    selected = [line for line in lines if line.selected]
    base = subtotal_at_original(selected)
    platform = total_platform_discount(selected)
    vouchers = bindings.total_discount()
    return Totals(
        subtotal_at_original=base,
        platform_discount=platform,
        voucher_discount=vouchers,
        shipping_fee=shipping_fee,
        total=max(0, base - platform - vouchers + shipping_fee),
    )


__all__ = (
    "platform_discount",
    "total_platform_discount",
    "round_half_up",
    "voucher_discount",
    "subtotal_at_original",
    "compute_totals",
)
