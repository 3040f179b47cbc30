"""
Checkout state — one immutable value, replaced by every event.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from cartflow.cart import CartLine, StoreGroup, group, group_selected
from cartflow.catalog import ProductInfo
from cartflow.checkout import AppliedVoucherRecord
from cartflow.pricing import Totals, VoucherBindings, VoucherCatalogView, VoucherConflict, compute_totals
from cartflow.shipping import Destination, QuoteSummary


def _frozen(entries: Mapping[str, ProductInfo] | None = None) -> Mapping[str, ProductInfo]:
    return MappingProxyType(dict(entries or {}))


@dataclass(frozen=True, slots=True)
class CheckoutState:
    """
    Everything the checkout screen shows, and what gates submission.

    `scheduled_generation` is the most recently armed quote pass,
    `quote_generation` the most recently started one and
    `applied_generation` the pass whose summary is in `quote`.
    """

    lines: tuple[CartLine, ...] = ()
    catalog: Mapping[str, ProductInfo] = field(default_factory=_frozen)
    vouchers: VoucherCatalogView = field(default_factory=VoucherCatalogView.pending)
    bindings: VoucherBindings = field(default_factory=VoucherBindings)
    restoring: tuple[AppliedVoucherRecord, ...] = ()
    destination: Destination | None = None

    quote: QuoteSummary | None = None
    scheduled_generation: int = 0
    quote_generation: int = 0
    applied_generation: int | None = None
    quoting: bool = False

    submitting: bool = False
    order_ids: tuple[str, ...] = ()
    checkout_url: str | None = None
    submit_error: str | None = None

    last_conflict: VoucherConflict | None = None
    messages: tuple[str, ...] = ()

    @property
    def groups(self) -> tuple[StoreGroup, ...]:
        return group(self.lines, self.catalog)

    @property
    def selected_groups(self) -> tuple[StoreGroup, ...]:
        return group_selected(self.lines, self.catalog)

    @property
    def shipping_fee(self) -> int:
        return self.quote.total_fee if self.quote is not None else 0

    @property
    def totals(self) -> Totals:
        return compute_totals(self.lines, self.bindings, self.shipping_fee)

    @property
    def quote_pending(self) -> bool:
        """A pass is armed but has not started yet."""
        return self.scheduled_generation > self.quote_generation

    @property
    def quote_current(self) -> bool:
        return (
            self.quote is not None
            and self.applied_generation == self.quote_generation
            and not self.quote_pending
            and not self.quoting
        )

    @property
    def submitted(self) -> bool:
        return bool(self.order_ids) or self.checkout_url is not None

    @property
    def submit_blockers(self) -> tuple[str, ...]:
        blockers: list[str] = []
        if not any(line.selected for line in self.lines):
            blockers.append("No items selected")
        if self.destination is None:
            blockers.append("No shipping address selected")
        if not self.quote_current:
            blockers.append("Shipping fee is not ready")
        elif self.quote is not None and self.quote.blocked:
            blockers.append(self.quote.error_message or "Shipping fee unavailable")
        if self.submitting:
            blockers.append("Order is already being submitted")
        if self.submitted:
            blockers.append("Order already submitted")
        return tuple(blockers)

    @property
    def can_submit(self) -> bool:
        return not self.submit_blockers


__all__ = ("CheckoutState",)
