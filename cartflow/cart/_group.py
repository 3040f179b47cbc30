"""
Grouping — partition cart lines by originating store.

Pure function of (lines, catalog snapshot). No lookups happen here; a product
missing from the snapshot lands in its own `unknown-{product_id}` group so no
line is ever dropped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from cartflow.cart._types import UNKNOWN_STORE_PREFIX, CartLine, ItemKind, StoreGroup
from cartflow.catalog import ProductInfo

UNKNOWN_STORE_NAME = "Unidentified store"


def unknown_store_key(product_id: str) -> str:
    return f"{UNKNOWN_STORE_PREFIX}{product_id}"


def store_of(line: CartLine, catalog: Mapping[str, ProductInfo]) -> tuple[str, str, bool]:
    """(store key, display name, resolved) for one line."""
    if line.kind is ItemKind.COMBO:
        return unknown_store_key(line.product_id), UNKNOWN_STORE_NAME, False
    info = catalog.get(line.product_id)
    if info is None or not info.store_id:
        return unknown_store_key(line.product_id), UNKNOWN_STORE_NAME, False
    return info.store_id, info.store_name or f"Store {info.store_id[:6]}", True


def group(lines: Iterable[CartLine], catalog: Mapping[str, ProductInfo]) -> tuple[StoreGroup, ...]:
    """
    Group lines by store, in first-seen order of store keys.

    Example:
        groups = group(cart_lines, products.snapshot())
        for g in groups:
            print(g.store_name, g.selected_subtotal)
    """
    members: dict[str, list[CartLine]] = {}
    heads: dict[str, tuple[str, bool]] = {}
    for line in lines:
        key, name, resolved = store_of(line, catalog)
        if key not in members:
            members[key] = []
            heads[key] = (name, resolved)
        members[key].append(line)

    return tuple(
        StoreGroup(store_id=key, store_name=heads[key][0], lines=tuple(found), resolved=heads[key][1])
        for key, found in members.items()
    )


def selected_lines(lines: Iterable[CartLine]) -> tuple[CartLine, ...]:
    return tuple(line for line in lines if line.selected)


def group_selected(lines: Iterable[CartLine], catalog: Mapping[str, ProductInfo]) -> tuple[StoreGroup, ...]:
    """Groups built from selected lines only; what shipping and tiers work on."""
    return group(selected_lines(lines), catalog)


def store_subtotal(
    lines: Iterable[CartLine],
    store_id: str,
    catalog: Mapping[str, ProductInfo],
) -> int:
    """Selected subtotal (post-campaign unit prices) of one store."""
    return sum(
        (line.line_total for line in lines if line.selected and store_of(line, catalog)[0] == store_id),
        0,
    )


__all__ = (
    "UNKNOWN_STORE_NAME",
    "unknown_store_key",
    "store_of",
    "group",
    "selected_lines",
    "group_selected",
    "store_subtotal",
)
