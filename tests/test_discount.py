"""Discount arithmetic and totals."""

from __future__ import annotations

from dataclasses import replace

import pytest

from cartflow.cart import CartLine
from cartflow.pricing import (
    AppliedVoucher,
    VoucherBindings,
    VoucherScope,
    compute_totals,
    platform_discount,
    subtotal_at_original,
    total_platform_discount,
    voucher_discount,
)

from .conftest import fixed_voucher, line, percent_voucher


class TestVoucherDiscount:
    """Discount a single voucher yields."""

    @pytest.mark.parametrize("subtotal", [0, 1, 99_999, 150_000, 150_001, 10_000_000])
    def test_percent_never_exceeds_cap(self, subtotal: int) -> None:
        voucher = percent_voucher(discount_percent=10, max_discount_value=15_000)

        assert voucher_discount(voucher, subtotal) <= 15_000

    def test_percent_below_cap(self) -> None:
        assert voucher_discount(percent_voucher(), 100_000) == 10_000

    def test_percent_capped(self) -> None:
        assert voucher_discount(percent_voucher(), 200_000) == 15_000

    def test_percent_without_cap(self) -> None:
        voucher = percent_voucher(max_discount_value=None)

        assert voucher_discount(voucher, 1_000_000) == 100_000

    def test_percent_rounds_half_up(self) -> None:
        voucher = percent_voucher(discount_percent=12.5, max_discount_value=None)

        assert voucher_discount(voucher, 100) == 13
        assert voucher_discount(voucher, 4) == 1

    def test_fixed_is_not_clamped_to_subtotal(self) -> None:
        assert voucher_discount(fixed_voucher(discount_value=30_000), 10_000) == 30_000


class TestPlatformDiscount:
    """Campaign discounts already baked into unit prices."""

    def test_difference_times_quantity(self) -> None:
        item = line("A", "P1", 3, 80_000, original_unit_price=100_000)

        assert platform_discount(item) == 60_000

    def test_no_original_price_means_no_discount(self) -> None:
        assert platform_discount(line("A", "P1", 3, 80_000)) == 0

    def test_deselected_lines_are_ignored(self) -> None:
        lines = [
            line("A", "P1", 1, 80_000, original_unit_price=100_000),
            line("B", "P2", 1, 80_000, original_unit_price=100_000, selected=False),
        ]

        assert total_platform_discount(lines) == 20_000


class TestTotals:
    """Grand total composition."""

    def test_subtotal_prefers_original_price(self) -> None:
        lines = [line("A", "P1", 2, 80_000, original_unit_price=100_000), line("B", "P2", 1, 50_000)]

        assert subtotal_at_original(lines) == 250_000

    def test_total_composition(self, cart_lines: list[CartLine]) -> None:
        lines = [replace(cart_lines[0], original_unit_price=120_000), *cart_lines[1:]]

        totals = compute_totals(lines, VoucherBindings(), shipping_fee=35_000)

        assert totals.subtotal_at_original == 270_000
        assert totals.platform_discount == 20_000
        assert totals.voucher_discount == 0
        assert totals.shipping_fee == 35_000
        assert totals.total == 285_000

    def test_total_is_clamped_at_zero(self) -> None:
        applied = AppliedVoucher(
            scope_key="P1",
            scope=VoucherScope.PRODUCT,
            voucher=fixed_voucher(discount_value=500_000),
            store_id="S1",
            discount=500_000,
        )
        bindings = VoucherBindings().replacing(applied)

        totals = compute_totals([line("A", "P1", 1, 10_000)], bindings, shipping_fee=0)

        assert totals.voucher_discount == 500_000
        assert totals.total == 0
