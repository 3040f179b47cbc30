"""
State — the checkout as an explicit state-transition function.

    from cartflow import state as St

    s = St.CheckoutState()
    s = St.reduce(s, St.CartChanged(lines))
    s = St.reduce(s, St.QuoteCompleted(generation=1, summary=summary))
    if s.can_submit:
        ...
"""

from __future__ import annotations

from cartflow.state._events import (
    SessionRestored,
    CartChanged,
    CatalogResolved,
    VoucherCatalogLoaded,
    AddressSelected,
    VoucherApplied,
    VoucherRemoved,
    QuoteScheduled,
    QuoteStarted,
    QuoteCompleted,
    SubmitStarted,
    SubmitFailed,
    SubmitSucceeded,
    MessagesDrained,
    Event,
)
from cartflow.state._state import CheckoutState
from cartflow.state._reduce import reduce, revalidate, restore_vouchers

__all__ = (
    # Events
    "SessionRestored",
    "CartChanged",
    "CatalogResolved",
    "VoucherCatalogLoaded",
    "AddressSelected",
    "VoucherApplied",
    "VoucherRemoved",
    "QuoteScheduled",
    "QuoteStarted",
    "QuoteCompleted",
    "SubmitStarted",
    "SubmitFailed",
    "SubmitSucceeded",
    "MessagesDrained",
    "Event",
    # State
    "CheckoutState",
    "reduce",
    "revalidate",
    "restore_vouchers",
)
