"""
Voucher validation pass.

Re-checks every binding against the loaded voucher catalog and the current
store subtotals. Runs after cart changes, catalog resolutions and voucher
catalog reloads. Synchronous: nothing here awaits, so one pass sees one
consistent state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from cartflow.cart import CartLine, ItemKind, store_subtotal
from cartflow.catalog import ProductInfo
from cartflow.pricing._bindings import VoucherBindings, owning_store
from cartflow.pricing._discount import voucher_discount
from cartflow.pricing._types import (
    AppliedVoucher,
    Revocation,
    RevocationReason,
    VoucherCatalogView,
    VoucherScope,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationPass:
    """Outcome of one pass. `revocations` are reported together, after the pass."""

    bindings: VoucherBindings
    revocations: tuple[Revocation, ...]
    changed: bool

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(r.message for r in self.revocations)


def catalog_complete(lines: Iterable[CartLine], catalog: Mapping[str, ProductInfo]) -> bool:
    """Every non-combo product in the cart has a catalog entry."""
    return all(line.product_id in catalog for line in lines if line.kind is not ItemKind.COMBO)


def validate(
    bindings: VoucherBindings,
    lines: Iterable[CartLine],
    catalog: Mapping[str, ProductInfo],
    view: VoucherCatalogView | None,
    now: datetime | None = None,
) -> ValidationPass:
    if view is None or not view.loaded:
        return ValidationPass(bindings=bindings, revocations=(), changed=False)

    lines = tuple(lines)
    complete = catalog_complete(lines, catalog)
    revocations: list[Revocation] = []
    updated = bindings
    changed = False

    for applied in bindings.all():
        store_id = owning_store(applied.scope, applied.scope_key, catalog)
        if store_id is None:
            continue

        def revoke(reason: RevocationReason, message: str, applied: AppliedVoucher = applied) -> None:
            nonlocal updated, changed
            updated = updated.unbind(applied.scope, applied.scope_key)
            changed = True
            revocations.append(
                Revocation(
                    code=applied.code,
                    scope=applied.scope,
                    scope_key=applied.scope_key,
                    reason=reason,
                    message=message,
                )
            )

        fresh = view.find(applied.code, applied.scope, store_id)
        if fresh is None or (now is not None and not fresh.is_within_window(now)):
            revoke(RevocationReason.NO_LONGER_VALID, f"Voucher {applied.code} is no longer valid and was removed")
            continue

        subtotal = store_subtotal(lines, store_id, catalog)
        if subtotal == 0:
            if complete:
                revoke(
                    RevocationReason.BASIS_VANISHED,
                    f"Voucher {applied.code} was removed because no items from its store are selected",
                )
            continue

        if fresh.min_order_value is not None and fresh.min_order_value > subtotal:
            revoke(
                RevocationReason.BELOW_MINIMUM,
                f"Voucher {applied.code} was removed: minimum order is {fresh.min_order_value:,} "
                f"but the store subtotal is now {subtotal:,}",
            )
            continue

        discount = voucher_discount(fresh, subtotal)
        if discount != applied.discount or fresh != applied.voucher or store_id != applied.store_id:
            updated = updated.replacing(
                AppliedVoucher(
                    scope_key=applied.scope_key,
                    scope=applied.scope,
                    voucher=fresh,
                    store_id=store_id,
                    discount=discount,
                )
            )
            changed = True

    if revocations:
        logger.warning("revoked %d voucher(s): %s", len(revocations), ", ".join(r.code for r in revocations))
    return ValidationPass(bindings=updated, revocations=tuple(revocations), changed=changed)


__all__ = ("ValidationPass", "catalog_complete", "validate")
