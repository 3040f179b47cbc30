"""
Checkout types — the submitted payload and what comes back.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Protocol

from cartflow.shipping import ServiceTier

# ═══════════════════════════════════════════════════════════════════════════════
# Items — exactly one identity each
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProductItem:
    product_id: str
    quantity: int

    @property
    def campaign_product_id(self) -> str | None:
        return self.product_id

    def to_wire(self) -> dict[str, Any]:
        return {"productId": self.product_id, "type": "PRODUCT", "quantity": self.quantity}


@dataclass(frozen=True, slots=True)
class VariantItem:
    """
    A variant line. `product_id` is never serialized; it is kept only so the
    base product's campaign voucher can be found.
    """

    variant_id: str
    quantity: int
    product_id: str | None = None

    @property
    def campaign_product_id(self) -> str | None:
        return self.product_id

    def to_wire(self) -> dict[str, Any]:
        return {"variantId": self.variant_id, "type": "PRODUCT", "quantity": self.quantity}


@dataclass(frozen=True, slots=True)
class ComboItem:
    combo_id: str
    quantity: int

    @property
    def campaign_product_id(self) -> str | None:
        return None

    def to_wire(self) -> dict[str, Any]:
        return {"comboId": self.combo_id, "type": "COMBO", "quantity": self.quantity}


type CheckoutItem = ProductItem | VariantItem | ComboItem


# ═══════════════════════════════════════════════════════════════════════════════
# Vouchers
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreVoucherCodes:
    store_id: str
    codes: tuple[str, ...]

    def to_wire(self) -> dict[str, Any]:
        return {"storeId": self.store_id, "codes": list(self.codes)}


@dataclass(frozen=True, slots=True)
class PlatformVoucherLine:
    campaign_voucher_id: str
    quantity: int

    def to_wire(self) -> dict[str, Any]:
        return {"campaignProductId": self.campaign_voucher_id, "quantity": self.quantity}


# ═══════════════════════════════════════════════════════════════════════════════
# Payment
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethod(Enum):
    COD = "COD"
    PAYOS = "PAYOS"


@dataclass(frozen=True, slots=True)
class PaymentOptions:
    """
    How the order is paid. PayOS needs the redirect URLs.

    Example:
        PaymentOptions.payos("Order #42", return_url="https://shop/ok", cancel_url="https://shop/cancel")
    """

    method: PaymentMethod = PaymentMethod.COD
    description: str | None = None
    return_url: str | None = None
    cancel_url: str | None = None

    def __post_init__(self) -> None:
        if self.method is PaymentMethod.PAYOS and not (self.return_url and self.cancel_url):
            raise ValueError("PayOS payment needs both return_url and cancel_url")

    @classmethod
    def cod(cls) -> PaymentOptions:
        return cls(method=PaymentMethod.COD)

    @classmethod
    def payos(cls, description: str, *, return_url: str, cancel_url: str) -> PaymentOptions:
        return cls(method=PaymentMethod.PAYOS, description=description, return_url=return_url, cancel_url=cancel_url)

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"paymentMethod": self.method.value}
        if self.method is PaymentMethod.PAYOS:
            wire["description"] = self.description or ""
            wire["returnUrl"] = self.return_url
            wire["cancelUrl"] = self.cancel_url
        return wire


# ═══════════════════════════════════════════════════════════════════════════════
# Payload
# ═══════════════════════════════════════════════════════════════════════════════


def _frozen(entries: Mapping[str, ServiceTier] | None = None) -> Mapping[str, ServiceTier]:
    return MappingProxyType(dict(entries or {}))


@dataclass(frozen=True, slots=True)
class CheckoutPayload:
    items: tuple[CheckoutItem, ...]
    address_id: str
    store_vouchers: tuple[StoreVoucherCodes, ...] = ()
    platform_vouchers: tuple[PlatformVoucherLine, ...] = ()
    service_tiers: Mapping[str, ServiceTier] = field(default_factory=_frozen)
    payment: PaymentOptions = field(default_factory=PaymentOptions.cod)
    message: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """camelCase body for the order service."""
        wire: dict[str, Any] = {
            "items": [item.to_wire() for item in self.items],
            "addressId": self.address_id,
            "storeVouchers": [entry.to_wire() for entry in self.store_vouchers],
            "platformVouchers": [entry.to_wire() for entry in self.platform_vouchers],
            "serviceTypeIds": {store_id: tier.value for store_id, tier in self.service_tiers.items()},
            **self.payment.to_wire(),
        }
        if self.message:
            wire["message"] = self.message
        return wire


# ═══════════════════════════════════════════════════════════════════════════════
# Submission
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SubmitReceipt:
    """Order service reply. `status` is "success" when orders were created."""

    status: str
    order_ids: tuple[str, ...] = ()
    message: str = ""
    checkout_url: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class SubmitErrorKind(Enum):
    BLOCKED = auto()
    REJECTED = auto()
    TRANSPORT = auto()


@dataclass(frozen=True, slots=True)
class SubmitError:
    kind: SubmitErrorKind
    message: str


class CheckoutSubmission(Protocol):
    """Order service. Raises on transport failure."""

    async def submit(self, payload: CheckoutPayload) -> SubmitReceipt:
        ...


__all__ = (
    "ProductItem",
    "VariantItem",
    "ComboItem",
    "CheckoutItem",
    "StoreVoucherCodes",
    "PlatformVoucherLine",
    "PaymentMethod",
    "PaymentOptions",
    "CheckoutPayload",
    "SubmitReceipt",
    "SubmitErrorKind",
    "SubmitError",
    "CheckoutSubmission",
)
