"""
Cart types.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Protocol

from cartflow._types import Money

UNKNOWN_STORE_PREFIX = "unknown-"


class ItemKind(Enum):
    PRODUCT = "PRODUCT"
    COMBO = "COMBO"


type IdentityMode = Literal["product", "variant", "combo"]


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One purchasable unit in the cart, as the cart service reports it.

    `unit_price` already carries any platform-campaign discount;
    `original_unit_price` is the pre-campaign price when the cart reports one.
    For COMBO lines `product_id` is the combo reference id.
    `origin_*` codes are the cart's own copy of the ship-from address.
    """

    line_id: str
    product_id: str
    quantity: int
    unit_price: Money
    original_unit_price: Money | None = None
    kind: ItemKind = ItemKind.PRODUCT
    variant_id: str | None = None
    combo_id: str | None = None
    name: str = ""
    selected: bool = True
    in_platform_campaign: bool = False
    campaign_usage_exceeded: bool = False
    origin_district_code: str | None = None
    origin_ward_code: str | None = None

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"line {self.line_id}: quantity must be positive, got {self.quantity}")
        if self.combo_id is not None and self.kind is not ItemKind.COMBO:
            raise ValueError(f"line {self.line_id}: combo id on a {self.kind.value} line")
        if self.kind is ItemKind.COMBO and self.variant_id is not None:
            raise ValueError(f"line {self.line_id}: combo lines cannot carry a variant")

    @property
    def identity_mode(self) -> IdentityMode:
        if self.kind is ItemKind.COMBO:
            return "combo"
        if self.variant_id is not None:
            return "variant"
        return "product"

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class StoreGroup:
    """Cart lines sharing one originating store. Derived, never mutated."""

    store_id: str
    store_name: str
    lines: tuple[CartLine, ...]
    resolved: bool

    @property
    def selected_lines(self) -> tuple[CartLine, ...]:
        return tuple(line for line in self.lines if line.selected)

    @property
    def selected_subtotal(self) -> Money:
        return sum((line.line_total for line in self.selected_lines), 0)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Persistence — source of truth for lines and quantities
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartError:
    """Cart service failure."""

    message: str


class CartPersistence(Protocol):
    """Every mutating call returns the cart's full line list afterwards."""

    async def get_cart(self) -> Sequence[CartLine]:
        ...

    async def update_quantity(self, line_id: str, quantity: int) -> Sequence[CartLine]:
        ...

    async def delete_lines(self, line_ids: Sequence[str]) -> Sequence[CartLine]:
        ...


__all__ = (
    "UNKNOWN_STORE_PREFIX",
    "ItemKind",
    "IdentityMode",
    "CartLine",
    "StoreGroup",
    "CartError",
    "CartPersistence",
)
