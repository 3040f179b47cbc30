"""
Fake storefront services — simulate the catalog, voucher, carrier, cart and
order APIs.

Each service has artificial latency so the parallel fan-outs are visible.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from cartflow.cart import CartLine
from cartflow.catalog import ProductInfo
from cartflow.checkout import CheckoutPayload, SubmitReceipt
from cartflow.pricing import (
    CampaignVoucher,
    DiscountKind,
    PlatformCampaign,
    ProductVoucherListing,
    Voucher,
    VoucherScope,
)
from cartflow.shipping import CarrierHttpError, CarrierRequest, CarrierResponse, Destination

HANOI = Destination(address_id="addr-hanoi", district_id="1442", ward_code="20308")


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Service (~30ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CatalogService:
    _products: dict[str, ProductInfo] = field(default_factory=dict[str, ProductInfo])
    calls: int = 0

    def seed(self) -> None:
        self._products = {
            "P1": ProductInfo("P1", "S1", "Green Tea House", 0.8, "1454", "21211", "Jasmine tea 500g", 100_000),
            "P2": ProductInfo("P2", "S1", "Green Tea House", 1.2, "1454", "21211", "Oolong tea 1kg", 100_000),
            "P3": ProductInfo("P3", "S2", "Ceramic Corner", None, "1461", "21313", "Tea cup", 50_000),
        }

    async def get_by_id(self, product_id: str) -> ProductInfo:
        await asyncio.sleep(0.03)
        self.calls += 1
        print(f"      [Catalog.get] {product_id}")
        found = self._products.get(product_id)
        if found is None:
            raise LookupError(f"product {product_id} not found")
        return found


# ═══════════════════════════════════════════════════════════════════════════════
# Voucher Service (~40ms)
# ═══════════════════════════════════════════════════════════════════════════════

TEA10 = Voucher(
    code="TEA10",
    kind=DiscountKind.PERCENT,
    scope=VoucherScope.PRODUCT,
    discount_percent=10,
    max_discount_value=15_000,
    store_id="S1",
    title="10% off tea, up to 15,000",
)
BIGTEA = Voucher(
    code="BIGTEA",
    kind=DiscountKind.FIXED,
    scope=VoucherScope.PRODUCT,
    discount_value=30_000,
    min_order_value=300_000,
    store_id="S1",
    title="30,000 off orders from 300,000",
)
CUPS5 = Voucher(
    code="CUPS5",
    kind=DiscountKind.FIXED,
    scope=VoucherScope.STORE_WIDE,
    discount_value=5_000,
    store_id="S2",
)


@dataclass
class VoucherService:
    _listings: dict[str, ProductVoucherListing] = field(default_factory=dict[str, ProductVoucherListing])
    _store_wide: dict[str, tuple[Voucher, ...]] = field(default_factory=dict[str, tuple[Voucher, ...]])

    def seed(self) -> None:
        self._listings = {
            "P1": ProductVoucherListing("P1", shop_vouchers=(TEA10, BIGTEA), list_price=100_000),
            "P2": ProductVoucherListing("P2", shop_vouchers=(TEA10,), list_price=100_000),
            "P3": ProductVoucherListing(
                "P3",
                campaigns=(
                    PlatformCampaign(
                        "CAMP-SUMMER",
                        vouchers=(CampaignVoucher("PV-CUP", DiscountKind.FIXED, discount_value=5_000),),
                    ),
                ),
                list_price=55_000,
            ),
        }
        self._store_wide = {"S2": (CUPS5,)}

    async def get_for_product(self, product_id: str) -> ProductVoucherListing:
        await asyncio.sleep(0.04)
        print(f"      [Vouchers.product] {product_id}")
        return self._listings.get(product_id, ProductVoucherListing(product_id))

    async def get_store_wide(self, store_id: str) -> Sequence[Voucher]:
        await asyncio.sleep(0.04)
        print(f"      [Vouchers.store] {store_id}")
        return self._store_wide.get(store_id, ())


# ═══════════════════════════════════════════════════════════════════════════════
# Carrier (~60ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CarrierService:
    """
    Flat fee per origin district.

    Unknown destination districts are rejected, as is every route out of an
    origin listed in `rejecting`.
    """

    fees: dict[int, int] = field(default_factory=lambda: {1454: 20_000, 1461: 15_000})
    known_districts: frozenset[int] = frozenset({1442, 1454, 1461})
    rejecting: set[int] = field(default_factory=set[int])
    requests: list[CarrierRequest] = field(default_factory=list[CarrierRequest])

    async def quote(self, request: CarrierRequest) -> CarrierResponse:
        await asyncio.sleep(0.06)
        self.requests.append(request)
        print(
            f"      [Carrier.fee] {request.from_district_id} → {request.to_district_id}"
            f" {request.weight}g tier={request.service_tier.name}"
        )
        if request.to_district_id not in self.known_districts or request.from_district_id in self.rejecting:
            raise CarrierHttpError(400, "District is invalid", "SEND_DISTRICT_IS_INVALID")
        return CarrierResponse(code=200, message="Success", fee=self.fees.get(request.from_district_id))


# ═══════════════════════════════════════════════════════════════════════════════
# Cart (~20ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CartService:
    _lines: list[CartLine] = field(default_factory=list[CartLine])

    def seed(self) -> None:
        self._lines = [
            CartLine("L1", "P1", 1, 100_000, name="Jasmine tea 500g", origin_district_code="1454", origin_ward_code="21211"),
            CartLine("L2", "P2", 1, 100_000, name="Oolong tea 1kg"),
            CartLine("L3", "P3", 1, 50_000, name="Tea cup", in_platform_campaign=True),
        ]

    async def get_cart(self) -> Sequence[CartLine]:
        await asyncio.sleep(0.02)
        return tuple(self._lines)

    async def update_quantity(self, line_id: str, quantity: int) -> Sequence[CartLine]:
        await asyncio.sleep(0.02)
        print(f"      [Cart.update] {line_id} × {quantity}")
        self._lines = [replace(line, quantity=quantity) if line.line_id == line_id else line for line in self._lines]
        return tuple(self._lines)

    async def delete_lines(self, line_ids: Sequence[str]) -> Sequence[CartLine]:
        await asyncio.sleep(0.02)
        self._lines = [line for line in self._lines if line.line_id not in line_ids]
        return tuple(self._lines)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders (~50ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class OrderService:
    submitted: list[CheckoutPayload] = field(default_factory=list[CheckoutPayload])

    async def submit(self, payload: CheckoutPayload) -> SubmitReceipt:
        await asyncio.sleep(0.05)
        self.submitted.append(payload)
        order_id = f"ORD-{len(self.submitted):04d}"
        print(f"      [Orders.submit] {order_id}")
        return SubmitReceipt(status="success", order_ids=(order_id,), message="Order created")


__all__ = (
    "HANOI",
    "TEA10",
    "BIGTEA",
    "CUPS5",
    "CatalogService",
    "VoucherService",
    "CarrierService",
    "CartService",
    "OrderService",
)
