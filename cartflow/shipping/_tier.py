"""
Service tier selection from aggregate package weight.

Pure. Recomputed whenever the selected lines or resolved weights change.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from cartflow.cart import CartLine, StoreGroup
from cartflow.catalog import ProductInfo
from cartflow.shipping._types import ServiceTier

DEFAULT_ITEM_WEIGHT_KG = 0.5
LIGHT_MAX_GRAMS = 7500


def item_weight_grams(info: ProductInfo | None, default_kg: float = DEFAULT_ITEM_WEIGHT_KG) -> int:
    """Per-unit weight; missing or non-positive weights fall back to the default."""
    kg = info.weight_kg if info is not None and info.weight_kg is not None and info.weight_kg > 0 else default_kg
    return round(kg * 1000)


def line_weight_grams(
    line: CartLine,
    catalog: Mapping[str, ProductInfo],
    default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
) -> int:
    return item_weight_grams(catalog.get(line.product_id), default_kg) * line.quantity


def lines_weight_grams(
    lines: Iterable[CartLine],
    catalog: Mapping[str, ProductInfo],
    default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
) -> int:
    return sum((line_weight_grams(line, catalog, default_kg) for line in lines if line.selected), 0)


def group_weight_grams(
    group: StoreGroup,
    catalog: Mapping[str, ProductInfo],
    default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
) -> int:
    return lines_weight_grams(group.lines, catalog, default_kg)


def select_tier(grams: int, light_max: int = LIGHT_MAX_GRAMS) -> ServiceTier:
    return ServiceTier.LIGHT if grams <= light_max else ServiceTier.HEAVY


def service_tiers(
    groups: Iterable[StoreGroup],
    catalog: Mapping[str, ProductInfo],
    *,
    default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
    light_max: int = LIGHT_MAX_GRAMS,
    resolved_only: bool = False,
) -> dict[str, ServiceTier]:
    """Tier per store id, in group order."""
    return {
        g.store_id: select_tier(group_weight_grams(g, catalog, default_kg), light_max)
        for g in groups
        if g.selected_lines and (g.resolved or not resolved_only)
    }


__all__ = (
    "DEFAULT_ITEM_WEIGHT_KG",
    "LIGHT_MAX_GRAMS",
    "item_weight_grams",
    "line_weight_grams",
    "lines_weight_grams",
    "group_weight_grams",
    "select_tier",
    "service_tiers",
)
