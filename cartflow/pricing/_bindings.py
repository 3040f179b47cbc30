"""
Voucher bindings — which code is bound to which product or store.

A code is held by at most one scope key at a time. Every operation returns a
new `VoucherBindings`; the previous value is never touched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from kungfu import Error, Ok, Result

from cartflow._types import Money
from cartflow.cart import CartLine, store_of, store_subtotal
from cartflow.catalog import ProductInfo
from cartflow.pricing._discount import voucher_discount
from cartflow.pricing._types import (
    AppliedVoucher,
    ConflictKind,
    Voucher,
    VoucherConflict,
    VoucherScope,
)


def _frozen(entries: Mapping[str, AppliedVoucher] | None = None) -> Mapping[str, AppliedVoucher]:
    return MappingProxyType(dict(entries or {}))


@dataclass(frozen=True, slots=True)
class VoucherBindings:
    """
    Product-scoped bindings keyed by product id, store-wide ones by store id.

    Example:
        match bindings.bind(applied):
            case Ok(updated):
                bindings = updated
            case Error(conflict):
                print(conflict.message)
    """

    product: Mapping[str, AppliedVoucher] = field(default_factory=_frozen)
    store_wide: Mapping[str, AppliedVoucher] = field(default_factory=_frozen)

    def _table(self, scope: VoucherScope) -> Mapping[str, AppliedVoucher]:
        return self.product if scope is VoucherScope.PRODUCT else self.store_wide

    def get(self, scope: VoucherScope, scope_key: str) -> AppliedVoucher | None:
        return self._table(scope).get(scope_key)

    def all(self) -> tuple[AppliedVoucher, ...]:
        return (*self.product.values(), *self.store_wide.values())

    def holder_of(self, code: str) -> AppliedVoucher | None:
        for applied in self.all():
            if applied.code == code:
                return applied
        return None

    def total_discount(self) -> Money:
        return sum((applied.discount for applied in self.all()), 0)

    def __len__(self) -> int:
        return len(self.product) + len(self.store_wide)

    def bind(self, applied: AppliedVoucher, holder_name: str | None = None) -> Result[VoucherBindings, VoucherConflict]:
        """
        Bind `applied` at its scope key, replacing whatever that key held.

        Fails if the code is held by a different scope key.
        """
        holder = self.holder_of(applied.code)
        if holder is not None and (holder.scope, holder.scope_key) != (applied.scope, applied.scope_key):
            name = holder_name or holder.scope_key
            return Error(
                VoucherConflict(
                    kind=ConflictKind.CODE_IN_USE,
                    code=applied.code,
                    scope_key=applied.scope_key,
                    message=f"Voucher {applied.code} is already used for {name}",
                    holder=holder.scope_key,
                )
            )
        return Ok(self.replacing(applied))

    def replacing(self, applied: AppliedVoucher) -> VoucherBindings:
        """Overwrite one key without conflict checks. Used by the validator."""
        table = dict(self._table(applied.scope))
        table[applied.scope_key] = applied
        return self._with(applied.scope, table)

    def unbind(self, scope: VoucherScope, scope_key: str) -> VoucherBindings:
        table = self._table(scope)
        if scope_key not in table:
            return self
        return self._with(scope, {k: v for k, v in table.items() if k != scope_key})

    def _with(self, scope: VoucherScope, table: Mapping[str, AppliedVoucher]) -> VoucherBindings:
        if scope is VoucherScope.PRODUCT:
            return VoucherBindings(product=_frozen(table), store_wide=self.store_wide)
        return VoucherBindings(product=self.product, store_wide=_frozen(table))


# ═══════════════════════════════════════════════════════════════════════════════
# Applying a Voucher
# ═══════════════════════════════════════════════════════════════════════════════


def owning_store(
    scope: VoucherScope,
    scope_key: str,
    catalog: Mapping[str, ProductInfo],
) -> str | None:
    """Store id a scope key belongs to, or None when the catalog can't tell yet."""
    if scope is VoucherScope.STORE_WIDE:
        return scope_key
    info = catalog.get(scope_key)
    return info.store_id if info is not None and info.store_id else None


def holder_label(
    applied: AppliedVoucher,
    lines: Iterable[CartLine],
    catalog: Mapping[str, ProductInfo],
) -> str:
    """Human name for whoever holds a binding: product name or store name."""
    lines = tuple(lines)
    if applied.scope is VoucherScope.PRODUCT:
        info = catalog.get(applied.scope_key)
        if info is not None and info.name:
            return info.name
        for line in lines:
            if line.product_id == applied.scope_key and line.name:
                return line.name
        return applied.scope_key
    for line in lines:
        key, name, resolved = store_of(line, catalog)
        if resolved and key == applied.scope_key:
            return name
    return applied.scope_key


def apply_voucher(
    bindings: VoucherBindings,
    voucher: Voucher,
    scope: VoucherScope,
    scope_key: str,
    lines: Iterable[CartLine],
    catalog: Mapping[str, ProductInfo],
    now: datetime,
) -> Result[VoucherBindings, VoucherConflict]:
    """
    Bind a voucher the user picked.

    Checks run in order: code already held elsewhere, owning store known,
    validity window, minimum order against the store's selected subtotal.
    """
    lines = tuple(lines)

    def conflict(kind: ConflictKind, message: str) -> Result[VoucherBindings, VoucherConflict]:
        return Error(VoucherConflict(kind=kind, code=voucher.code, scope_key=scope_key, message=message))

    holder = bindings.holder_of(voucher.code)
    if holder is not None and (holder.scope, holder.scope_key) != (scope, scope_key):
        return bindings.bind(
            AppliedVoucher(scope_key=scope_key, scope=scope, voucher=voucher, store_id=None, discount=0),
            holder_name=holder_label(holder, lines, catalog),
        )

    store_id = owning_store(scope, scope_key, catalog)
    if store_id is None:
        return conflict(ConflictKind.UNKNOWN_STORE, f"Store for {scope_key} is not known yet; try again shortly")

    if not voucher.is_within_window(now):
        return conflict(ConflictKind.NOT_ACTIVE, f"Voucher {voucher.code} is not active")

    subtotal = store_subtotal(lines, store_id, catalog)
    if voucher.min_order_value is not None and voucher.min_order_value > subtotal:
        return conflict(
            ConflictKind.BELOW_MINIMUM,
            f"Voucher {voucher.code} requires a minimum order of {voucher.min_order_value:,}; "
            f"store subtotal is {subtotal:,}",
        )

    applied = AppliedVoucher(
        scope_key=scope_key,
        scope=scope,
        voucher=voucher,
        store_id=store_id,
        discount=voucher_discount(voucher, subtotal),
    )
    return bindings.bind(applied)


__all__ = (
    "VoucherBindings",
    "owning_store",
    "holder_label",
    "apply_voucher",
)
