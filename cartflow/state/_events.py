"""
Events the checkout state reacts to.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from cartflow.cart import CartLine
from cartflow.catalog import ProductInfo
from cartflow.checkout import PendingCheckout
from cartflow.pricing import VoucherCatalogView, VoucherScope
from cartflow.shipping import Destination, QuoteSummary


@dataclass(frozen=True, slots=True)
class SessionRestored:
    record: PendingCheckout


@dataclass(frozen=True, slots=True)
class CartChanged:
    lines: tuple[CartLine, ...]
    now: datetime | None = None


@dataclass(frozen=True, slots=True)
class CatalogResolved:
    entries: Mapping[str, ProductInfo]
    now: datetime | None = None


@dataclass(frozen=True, slots=True)
class VoucherCatalogLoaded:
    view: VoucherCatalogView
    now: datetime


@dataclass(frozen=True, slots=True)
class AddressSelected:
    destination: Destination


@dataclass(frozen=True, slots=True)
class VoucherApplied:
    code: str
    scope: VoucherScope
    scope_key: str
    now: datetime


@dataclass(frozen=True, slots=True)
class VoucherRemoved:
    scope: VoucherScope
    scope_key: str


@dataclass(frozen=True, slots=True)
class QuoteScheduled:
    generation: int


@dataclass(frozen=True, slots=True)
class QuoteStarted:
    generation: int


@dataclass(frozen=True, slots=True)
class QuoteCompleted:
    generation: int
    summary: QuoteSummary


@dataclass(frozen=True, slots=True)
class SubmitStarted:
    pass


@dataclass(frozen=True, slots=True)
class SubmitFailed:
    message: str


@dataclass(frozen=True, slots=True)
class SubmitSucceeded:
    order_ids: tuple[str, ...]
    checkout_url: str | None = None


@dataclass(frozen=True, slots=True)
class MessagesDrained:
    pass


type Event = (
    SessionRestored
    | CartChanged
    | CatalogResolved
    | VoucherCatalogLoaded
    | AddressSelected
    | VoucherApplied
    | VoucherRemoved
    | QuoteScheduled
    | QuoteStarted
    | QuoteCompleted
    | SubmitStarted
    | SubmitFailed
    | SubmitSucceeded
    | MessagesDrained
)


__all__ = (
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
)
