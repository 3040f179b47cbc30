"""
Shipping types — carrier wire shapes, per-store quotes, the aggregate summary.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Protocol

from cartflow._types import Money

GENERIC_QUOTE_FAILURE = "Failed to compute shipping fee"
DESTINATION_INVALID_MESSAGE = "Shipping address is invalid. Please check the district and ward"
INVALID_DISTRICT_CODE = "SEND_DISTRICT_IS_INVALID"

# ═══════════════════════════════════════════════════════════════════════════════
# Tiers & Destination
# ═══════════════════════════════════════════════════════════════════════════════


class ServiceTier(Enum):
    """Carrier service type id."""

    LIGHT = 2
    HEAVY = 5


def district_number(code: str | None) -> int | None:
    """Carrier district ids are ASCII digit strings; anything else is unusable."""
    if not code or not (code.isascii() and code.isdecimal()):
        return None
    return int(code)


@dataclass(frozen=True, slots=True)
class Destination:
    """Customer address reduced to the administrative codes the carrier needs."""

    address_id: str
    district_id: str | None
    ward_code: str | None

    @property
    def is_complete(self) -> bool:
        return bool(self.ward_code) and district_number(self.district_id) is not None


# ═══════════════════════════════════════════════════════════════════════════════
# Carrier Wire
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ManifestItem:
    name: str
    quantity: int
    weight: int

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "length": 1,
            "width": 1,
            "height": 1,
            "weight": self.weight,
        }


@dataclass(frozen=True, slots=True)
class CarrierRequest:
    """One store's fee-quote request. `weight` is the store total in grams."""

    service_tier: ServiceTier
    from_district_id: int
    from_ward_code: str
    to_district_id: int
    to_ward_code: str
    weight: int
    items: tuple[ManifestItem, ...]

    def to_wire(self) -> dict[str, Any]:
        return {
            "service_type_id": self.service_tier.value,
            "from_district_id": self.from_district_id,
            "from_ward_code": self.from_ward_code,
            "to_district_id": self.to_district_id,
            "to_ward_code": self.to_ward_code,
            "length": 1,
            "width": 1,
            "height": 1,
            "weight": self.weight,
            "insurance_value": 0,
            "coupon": "",
            "items": [item.to_wire() for item in self.items],
        }


@dataclass(frozen=True, slots=True)
class CarrierResponse:
    """Carrier reply. `code` 200 means success; `fee` may still be missing."""

    code: int
    message: str = ""
    code_message: str | None = None
    fee: Money | None = None


class CarrierHttpError(Exception):
    """Raised by carrier transport adapters for non-2xx replies."""

    def __init__(self, status: int, message: str = "", code_message: str | None = None) -> None:
        super().__init__(message or f"carrier returned {status}")
        self.status = status
        self.message = message
        self.code_message = code_message


class CarrierService(Protocol):
    async def quote(self, request: CarrierRequest) -> CarrierResponse:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Quotes
# ═══════════════════════════════════════════════════════════════════════════════


class QuoteFailureKind(Enum):
    MISSING_ORIGIN = auto()
    DESTINATION_INVALID = auto()
    CARRIER = auto()
    FEE_MISSING = auto()
    TRANSPORT = auto()
    ADDRESS_INCOMPLETE = auto()


@dataclass(frozen=True, slots=True)
class QuoteFailure:
    kind: QuoteFailureKind
    message: str


@dataclass(frozen=True, slots=True)
class ShippingQuote:
    """Per-store outcome: a fee, or the reason there isn't one."""

    store_id: str
    store_name: str
    fee: Money | None = None
    error: QuoteFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.fee is not None


def _frozen(entries: Mapping[str, ShippingQuote] | None = None) -> Mapping[str, ShippingQuote]:
    return MappingProxyType(dict(entries or {}))


@dataclass(frozen=True, slots=True)
class QuoteSummary:
    """
    All stores' quotes from one aggregate pass, applied together.

    Fail-closed: a single failing store zeroes the total and blocks checkout.
    """

    quotes: Mapping[str, ShippingQuote] = field(default_factory=_frozen)
    address_error: QuoteFailure | None = None

    @classmethod
    def unavailable(cls, failure: QuoteFailure) -> QuoteSummary:
        return cls(quotes=_frozen(), address_error=failure)

    @property
    def failures(self) -> tuple[ShippingQuote, ...]:
        return tuple(q for q in self.quotes.values() if not q.ok)

    @property
    def blocked(self) -> bool:
        return self.address_error is not None or bool(self.failures)

    @property
    def total_fee(self) -> Money:
        if self.blocked:
            return 0
        return sum((q.fee or 0 for q in self.quotes.values()), 0)

    @property
    def error_message(self) -> str | None:
        if self.address_error is not None:
            return self.address_error.message
        failures = self.failures
        if not failures:
            return None
        return "; ".join(
            f"{q.store_name}: {q.error.message if q.error is not None else GENERIC_QUOTE_FAILURE}" for q in failures
        )


__all__ = (
    "GENERIC_QUOTE_FAILURE",
    "DESTINATION_INVALID_MESSAGE",
    "INVALID_DISTRICT_CODE",
    "ServiceTier",
    "district_number",
    "Destination",
    "ManifestItem",
    "CarrierRequest",
    "CarrierResponse",
    "CarrierHttpError",
    "CarrierService",
    "QuoteFailureKind",
    "QuoteFailure",
    "ShippingQuote",
    "QuoteSummary",
)
