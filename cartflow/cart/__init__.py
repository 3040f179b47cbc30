"""
Cart — lines as the cart service reports them, grouped by store.

    from cartflow import cart as CT

    groups = CT.group(lines, products.snapshot())
"""

from __future__ import annotations

from cartflow.cart._types import (
    UNKNOWN_STORE_PREFIX,
    ItemKind,
    IdentityMode,
    CartLine,
    StoreGroup,
    CartError,
    CartPersistence,
)
from cartflow.cart._group import (
    UNKNOWN_STORE_NAME,
    unknown_store_key,
    store_of,
    group,
    selected_lines,
    group_selected,
    store_subtotal,
)

__all__ = (
    "UNKNOWN_STORE_PREFIX",
    "UNKNOWN_STORE_NAME",
    "ItemKind",
    "IdentityMode",
    "CartLine",
    "StoreGroup",
    "CartError",
    "CartPersistence",
    "unknown_store_key",
    "store_of",
    "group",
    "selected_lines",
    "group_selected",
    "store_subtotal",
)
