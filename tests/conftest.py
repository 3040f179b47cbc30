"""Pytest configuration, fakes for every collaborator, and shared fixtures."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

import pytest

from cartflow.cart import CartLine
from cartflow.catalog import ProductInfo
from cartflow.checkout import CheckoutPayload, MemorySessionStore, PendingCheckout, SubmitReceipt
from cartflow.config import Settings
from cartflow.engine import CheckoutEngine
from cartflow.pricing import DiscountKind, ProductVoucherListing, Voucher, VoucherScope
from cartflow.shipping import CarrierRequest, CarrierResponse, Destination

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

S1_DISTRICT = 1454
S2_DISTRICT = 1461


def fixed_clock() -> datetime:
    return NOW


# ═══════════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class FakeLookup:
    products: dict[str, ProductInfo]
    failing: set[str] = field(default_factory=set)
    delay: float = 0.0
    calls: Counter[str] = field(default_factory=Counter)

    async def get_by_id(self, product_id: str) -> ProductInfo:
        self.calls[product_id] += 1
        await asyncio.sleep(self.delay)
        if product_id in self.failing:
            raise ConnectionError(f"catalog down for {product_id}")
        found = self.products.get(product_id)
        if found is None:
            raise LookupError(f"{product_id} not found")
        return found


@dataclass
class FakeVoucherCatalog:
    listings: dict[str, ProductVoucherListing] = field(default_factory=dict)
    store_wide: dict[str, tuple[Voucher, ...]] = field(default_factory=dict)
    failing_products: set[str] = field(default_factory=set)
    failing_stores: set[str] = field(default_factory=set)
    product_calls: list[str] = field(default_factory=list)
    delay: float = 0.0
    in_flight: int = 0
    peak: int = 0

    async def _wait(self) -> None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    async def get_for_product(self, product_id: str) -> ProductVoucherListing:
        self.product_calls.append(product_id)
        await self._wait()
        if product_id in self.failing_products:
            raise ConnectionError("voucher service down")
        return self.listings.get(product_id, ProductVoucherListing(product_id))

    async def get_store_wide(self, store_id: str) -> Sequence[Voucher]:
        await self._wait()
        if store_id in self.failing_stores:
            raise ConnectionError("voucher service down")
        return self.store_wide.get(store_id, ())


type CarrierReply = CarrierResponse | Exception


@dataclass
class FakeCarrier:
    """Replies keyed by origin district; anything unlisted gets a 10,000 fee."""

    replies: dict[int, CarrierReply] = field(default_factory=dict)
    delays: dict[int, float] = field(default_factory=dict)
    requests: list[CarrierRequest] = field(default_factory=list)
    in_flight: int = 0
    peak: int = 0

    async def quote(self, request: CarrierRequest) -> CarrierResponse:
        self.requests.append(request)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(request.from_district_id, 0))
        finally:
            self.in_flight -= 1
        reply = self.replies.get(request.from_district_id, CarrierResponse(code=200, fee=10_000))
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class FakeCart:
    """Each update applies at once; `update_delays` hold back the reply of the n-th update."""

    lines: list[CartLine]
    failing: bool = False
    update_delays: list[float] = field(default_factory=list)

    async def get_cart(self) -> Sequence[CartLine]:
        if self.failing:
            raise ConnectionError("cart service down")
        return tuple(self.lines)

    async def update_quantity(self, line_id: str, quantity: int) -> Sequence[CartLine]:
        if self.failing:
            raise ConnectionError("cart service down")
        self.lines = [replace(line, quantity=quantity) if line.line_id == line_id else line for line in self.lines]
        reply = tuple(self.lines)
        if self.update_delays:
            await asyncio.sleep(self.update_delays.pop(0))
        return reply

    async def delete_lines(self, line_ids: Sequence[str]) -> Sequence[CartLine]:
        self.lines = [line for line in self.lines if line.line_id not in line_ids]
        return tuple(self.lines)


@dataclass
class FakeOrders:
    replies: list[SubmitReceipt | Exception] = field(default_factory=list)
    submitted: list[CheckoutPayload] = field(default_factory=list)

    async def submit(self, payload: CheckoutPayload) -> SubmitReceipt:
        self.submitted.append(payload)
        reply = self.replies.pop(0) if self.replies else SubmitReceipt(status="success", order_ids=("ORD-1",))
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class ManualScheduler:
    """Timers that only fire when the test says so."""

    armed: list[tuple[int, Callable[[int], None]]] = field(default_factory=list)
    cancelled: list[int] = field(default_factory=list)
    delays: list[float] = field(default_factory=list)

    def schedule(self, delay: float, generation: int, callback: Callable[[int], None]) -> Callable[[], None]:
        entry = (generation, callback)
        self.armed.append(entry)
        self.delays.append(delay)

        def cancel() -> None:
            if entry in self.armed:
                self.armed.remove(entry)
                self.cancelled.append(generation)

        return cancel

    def fire(self) -> int:
        generation, callback = self.armed.pop()
        callback(generation)
        return generation


# ═══════════════════════════════════════════════════════════════════════════════
# Data
# ═══════════════════════════════════════════════════════════════════════════════


def product(
    product_id: str,
    store_id: str | None,
    *,
    district: int | None = None,
    weight_kg: float | None = 0.5,
    name: str = "",
    list_price: int | None = None,
) -> ProductInfo:
    return ProductInfo(
        product_id=product_id,
        store_id=store_id,
        store_name=f"Store {store_id}" if store_id else None,
        weight_kg=weight_kg,
        origin_district_code=str(district) if district is not None else None,
        origin_ward_code="W1" if district is not None else None,
        name=name or f"Product {product_id}",
        list_price=list_price,
    )


def line(line_id: str, product_id: str, quantity: int, unit_price: int, **kwargs: object) -> CartLine:
    return CartLine(line_id=line_id, product_id=product_id, quantity=quantity, unit_price=unit_price, **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def products() -> dict[str, ProductInfo]:
    return {
        "P1": product("P1", "S1", district=S1_DISTRICT, weight_kg=0.8, name="Jasmine tea"),
        "P2": product("P2", "S1", district=S1_DISTRICT, weight_kg=1.2, name="Oolong tea"),
        "P3": product("P3", "S2", district=S2_DISTRICT, weight_kg=None, name="Tea cup", list_price=50_000),
    }


@pytest.fixture
def cart_lines() -> list[CartLine]:
    """Two lines from S1 (100,000 each) and one from S2 (50,000)."""
    return [
        line("L1", "P1", 1, 100_000, name="Jasmine tea"),
        line("L2", "P2", 1, 100_000, name="Oolong tea"),
        line("L3", "P3", 1, 50_000, name="Tea cup"),
    ]


@pytest.fixture
def destination() -> Destination:
    return Destination(address_id="addr-1", district_id="1442", ward_code="20308")


def percent_voucher(code: str = "TEA10", **kwargs: object) -> Voucher:
    defaults: dict[str, object] = {
        "kind": DiscountKind.PERCENT,
        "scope": VoucherScope.PRODUCT,
        "discount_percent": 10,
        "max_discount_value": 15_000,
        "store_id": "S1",
    }
    defaults.update(kwargs)
    return Voucher(code=code, **defaults)  # type: ignore[arg-type]


def fixed_voucher(code: str = "BIG", **kwargs: object) -> Voucher:
    defaults: dict[str, object] = {
        "kind": DiscountKind.FIXED,
        "scope": VoucherScope.PRODUCT,
        "discount_value": 30_000,
        "store_id": "S1",
    }
    defaults.update(kwargs)
    return Voucher(code=code, **defaults)  # type: ignore[arg-type]


# ═══════════════════════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class Harness:
    engine: CheckoutEngine
    lookup: FakeLookup
    vouchers: FakeVoucherCatalog
    carrier: FakeCarrier
    cart: FakeCart
    orders: FakeOrders
    sessions: MemorySessionStore
    scheduler: ManualScheduler


@pytest.fixture
def voucher_catalog() -> FakeVoucherCatalog:
    return FakeVoucherCatalog(
        listings={
            "P1": ProductVoucherListing("P1", shop_vouchers=(percent_voucher(), fixed_voucher(min_order_value=300_000))),
            "P2": ProductVoucherListing("P2", shop_vouchers=(percent_voucher(),)),
        }
    )


@pytest.fixture
def make_harness(
    products: dict[str, ProductInfo],
    cart_lines: list[CartLine],
    destination: Destination,
    voucher_catalog: FakeVoucherCatalog,
) -> Callable[..., Harness]:
    async def build(
        *,
        carrier: FakeCarrier | None = None,
        orders: FakeOrders | None = None,
        record: PendingCheckout | None = None,
    ) -> Harness:
        sessions = MemorySessionStore(clock=fixed_clock)
        await sessions.save(
            record
            or PendingCheckout(
                selected_line_ids=tuple(ln.line_id for ln in cart_lines),
                selected_address_id=destination.address_id,
                created_at=NOW,
            )
        )
        harness = Harness(
            engine=None,  # type: ignore[arg-type]
            lookup=FakeLookup(products),
            vouchers=voucher_catalog,
            carrier=carrier or FakeCarrier(replies={S1_DISTRICT: CarrierResponse(200, fee=20_000), S2_DISTRICT: CarrierResponse(200, fee=15_000)}),
            cart=FakeCart(list(cart_lines)),
            orders=orders or FakeOrders(),
            sessions=sessions,
            scheduler=ManualScheduler(),
        )
        harness.engine = CheckoutEngine(
            lookup=harness.lookup,
            vouchers=harness.vouchers,
            carrier=harness.carrier,
            cart=harness.cart,
            submission=harness.orders,
            sessions=harness.sessions,
            settings=Settings(),
            scheduler=harness.scheduler,
            clock=fixed_clock,
        )
        return harness

    return build
