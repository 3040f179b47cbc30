"""
Storefront checkout walkthrough.

    A  two stores, both quotes succeed
    B  a 10% product voucher capped at 15,000
    C  one store's carrier rejects the route, checkout is blocked
    D  a minimum-order voucher is revoked after a quantity change

Run: python -m examples.storefront.demo
"""

from __future__ import annotations

from kungfu import Error, Ok

from cartflow import CheckoutEngine
from cartflow.checkout import PendingCheckout
from cartflow.config import Settings
from cartflow.pricing import VoucherScope
from cartflow._types import utcnow
from examples._infra import banner, print_messages, print_totals, run
from examples.storefront.services import (
    HANOI,
    CarrierService,
    CartService,
    CatalogService,
    OrderService,
    VoucherService,
)

ADDRESSES = {HANOI.address_id: HANOI}


async def open_checkout(carrier: CarrierService | None = None) -> tuple[CheckoutEngine, OrderService]:
    products, vouchers, cart, orders = CatalogService(), VoucherService(), CartService(), OrderService()
    products.seed()
    vouchers.seed()
    cart.seed()

    engine = CheckoutEngine(
        lookup=products,
        vouchers=vouchers,
        carrier=carrier or CarrierService(),
        cart=cart,
        submission=orders,
        settings=Settings(quote_debounce_seconds=0.2, pending_checkout_ttl_seconds=1800),
    )
    await engine.sessions.save(
        PendingCheckout(
            selected_line_ids=("L1", "L2", "L3"),
            selected_address_id=HANOI.address_id,
            created_at=utcnow(),
        )
    )
    match await engine.start(ADDRESSES):
        case Ok(_):
            pass
        case Error(e):
            raise SystemExit(f"checkout could not start: {e.message}")
    return engine, orders


async def scenario_a() -> None:
    banner("A — two stores, both quotes succeed")
    engine, orders = await open_checkout()
    await engine.flush_quote()
    print_totals(engine.state.totals)

    match await engine.submit():
        case Ok(receipt):
            print(f"    ✓ Orders {', '.join(receipt.order_ids)}")
            print(f"    Payload: {orders.submitted[-1].to_wire()}")
        case Error(e):
            print(f"    ✗ {e.message}")
    await engine.aclose()


async def scenario_b() -> None:
    banner("B — 10% voucher, capped at 15,000")
    engine, _ = await open_checkout()
    match await engine.apply_voucher("TEA10", VoucherScope.PRODUCT, "P1"):
        case Ok(applied):
            print(f"    ✓ {applied.code} → -{applied.discount:,}")
        case Error(conflict):
            print(f"    ✗ {conflict.message}")

    match await engine.apply_voucher("TEA10", VoucherScope.PRODUCT, "P2"):
        case Ok(_):
            print("    ✗ the same code was bound twice")
        case Error(conflict):
            print(f"    ✓ rejected: {conflict.message}")

    await engine.flush_quote()
    print_totals(engine.state.totals)
    await engine.aclose()


async def scenario_c() -> None:
    banner("C — one store's route rejected")
    engine, _ = await open_checkout(CarrierService(rejecting={1461}))
    await engine.flush_quote()
    print_totals(engine.state.totals)
    print_messages(engine.drain_messages())

    match await engine.submit():
        case Ok(_):
            print("    ✗ submitted with an incomplete shipping fee")
        case Error(e):
            print(f"    ✓ blocked: {e.message}")
    await engine.aclose()


async def scenario_d() -> None:
    banner("D — minimum order no longer met")
    engine, _ = await open_checkout()
    await engine.set_quantity("L1", 2)
    match await engine.apply_voucher("BIGTEA", VoucherScope.PRODUCT, "P1"):
        case Ok(applied):
            print(f"    ✓ {applied.code} → -{applied.discount:,}")
        case Error(conflict):
            print(f"    ✗ {conflict.message}")

    await engine.set_quantity("L1", 1)
    print_messages(engine.drain_messages())
    await engine.flush_quote()
    print_totals(engine.state.totals)
    await engine.aclose()


async def main() -> None:
    await scenario_a()
    await scenario_b()
    await scenario_c()
    await scenario_d()


if __name__ == "__main__":
    run(main)
