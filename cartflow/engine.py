"""
CheckoutEngine — wires the collaborators to the state reducer.

Every change goes through `reduce`; this class only does the I/O around it:
cart persistence, catalog resolution, voucher catalog loading, debounced
shipping quotes, submission.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from kungfu import Error, Ok, Result

from cartflow._types import Clock, utcnow
from cartflow.cart import CartError, CartLine, CartPersistence, ItemKind
from cartflow.catalog import CatalogCache, CatalogLookup, ProductInfo, Tier, catalog
from cartflow.checkout import (
    CheckoutSubmission,
    MemorySessionStore,
    PaymentMethod,
    PaymentOptions,
    SessionError,
    SessionErrorKind,
    SessionStore,
    SubmitError,
    SubmitErrorKind,
    SubmitReceipt,
    build_payload,
)
from cartflow.config import Settings, get_settings
from cartflow.lift import from_awaitable
from cartflow.pricing import (
    AppliedVoucher,
    ConflictKind,
    LivePlatformResolver,
    VoucherCatalog,
    VoucherConflict,
    VoucherScope,
    load_voucher_catalog,
)
from cartflow.shipping import (
    GENERIC_QUOTE_FAILURE,
    CarrierService,
    Destination,
    QuoteFailure,
    QuoteFailureKind,
    QuoteScheduler,
    QuoteSummary,
    Scheduler,
    ShippingOrchestrator,
)
from cartflow.state import (
    AddressSelected,
    CartChanged,
    CatalogResolved,
    CheckoutState,
    Event,
    MessagesDrained,
    QuoteCompleted,
    QuoteScheduled,
    QuoteStarted,
    SessionRestored,
    SubmitFailed,
    SubmitStarted,
    SubmitSucceeded,
    VoucherApplied,
    VoucherCatalogLoaded,
    VoucherRemoved,
    reduce,
)

logger = logging.getLogger(__name__)

SUBMIT_FAILED_MESSAGE = "Could not place the order"
PAYMENT_LINK_MISSING_MESSAGE = "Payment link missing from order response"


class CheckoutEngine:
    """
    One customer's checkout.

    Example:
        engine = CheckoutEngine(
            lookup=catalog_api,
            vouchers=voucher_api,
            carrier=carrier_api,
            cart=cart_api,
            submission=order_api,
        )
        await engine.sessions.save(record)  # in-memory store, settings TTL
        match await engine.start(addresses):
            case Ok(state):
                await engine.flush_quote()
                print(engine.state.totals)
            case Error(e):
                print(e.message)
    """

    def __init__(
        self,
        *,
        lookup: CatalogLookup,
        vouchers: VoucherCatalog,
        carrier: CarrierService,
        cart: CartPersistence,
        submission: CheckoutSubmission,
        sessions: SessionStore | None = None,
        settings: Settings | None = None,
        scheduler: Scheduler | None = None,
        clock: Clock = utcnow,
        tiers: Iterable[Tier[ProductInfo]] = (),
    ) -> None:
        settings = settings or get_settings()
        builder = catalog(lookup)
        for t in tiers:
            builder = builder.tier(t)

        self._products: CatalogCache = builder.build()
        self._vouchers = vouchers
        self._cart = cart
        self._submission = submission
        if sessions is None:
            sessions = MemorySessionStore(ttl=settings.pending_checkout_ttl, clock=clock)
        self._sessions = sessions
        self._clock = clock
        self._default_kg = settings.default_item_weight_kg
        self._light_max = settings.light_tier_max_grams
        self._shipping = ShippingOrchestrator(
            carrier,
            default_kg=settings.default_item_weight_kg,
            light_max=settings.light_tier_max_grams,
        )
        self._quotes = QuoteScheduler(
            self._quote_pass,
            delay=settings.quote_debounce_seconds,
            scheduler=scheduler,
        )
        self._line_ids: frozenset[str] = frozenset()
        self._cart_seq = 0
        self._state = CheckoutState()

    # ═══════════════════════════════════════════════════════════════════════════
    # State
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def products(self) -> CatalogCache:
        return self._products

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    def dispatch(self, event: Event) -> CheckoutState:
        self._state = reduce(self._state, event)
        return self._state

    def drain_messages(self) -> tuple[str, ...]:
        """User-facing messages gathered since the last drain."""
        messages = self._state.messages
        self.dispatch(MessagesDrained())
        return messages

    # ═══════════════════════════════════════════════════════════════════════════
    # Start
    # ═══════════════════════════════════════════════════════════════════════════

    async def start(
        self,
        addresses: Mapping[str, Destination] | None = None,
    ) -> Result[CheckoutState, SessionError | CartError]:
        """
        Open the checkout from the pending checkout record.

        Loads the record, fetches the cart and keeps only the recorded lines,
        resolves the catalog, loads vouchers, then arms the first quote.
        """
        match await self._sessions.load():
            case Ok(record):
                pass
            case Error(e):
                logger.info("checkout not started: %s", e.message)
                return Error(e)

        self.dispatch(SessionRestored(record))
        self._line_ids = frozenset(record.selected_line_ids)

        fetched = await from_awaitable(self._cart.get_cart, on_error=lambda e: CartError(str(e) or "Cart unavailable"))
        match fetched:
            case Ok(lines):
                pass
            case Error(e):
                return Error(e)

        chosen = self._checkout_lines(lines)
        if not chosen:
            return Error(SessionError(SessionErrorKind.EMPTY, "Selected items are no longer in the cart"))

        await self._resolve_catalog(chosen)
        self.dispatch(CartChanged(chosen, now=self._clock()))

        if addresses and record.selected_address_id in addresses:
            self.dispatch(AddressSelected(addresses[record.selected_address_id]))

        await self.reload_vouchers()
        self._schedule_quote()
        logger.info("checkout started with %d line(s)", len(chosen))
        return Ok(self._state)

    async def reload_vouchers(self) -> CheckoutState:
        state = self._state
        store_ids = [g.store_id for g in state.groups if g.resolved]
        view = await load_voucher_catalog(self._vouchers, state.lines, state.catalog, store_ids, self._clock())
        return self.dispatch(VoucherCatalogLoaded(view=view, now=self._clock()))

    def _checkout_lines(self, lines: Sequence[CartLine]) -> tuple[CartLine, ...]:
        return tuple(
            line if line.selected else replace(line, selected=True)
            for line in lines
            if line.line_id in self._line_ids
        )

    async def _resolve_catalog(self, lines: Iterable[CartLine]) -> None:
        wanted = [line.product_id for line in lines if line.kind is not ItemKind.COMBO]
        if all(pid in self._state.catalog for pid in wanted):
            return
        snapshot = await self._products.resolve(wanted)
        self.dispatch(CatalogResolved(snapshot, now=self._clock()))

    # ═══════════════════════════════════════════════════════════════════════════
    # Vouchers
    # ═══════════════════════════════════════════════════════════════════════════

    async def apply_voucher(
        self,
        code: str,
        scope: VoucherScope,
        scope_key: str,
    ) -> Result[AppliedVoucher, VoucherConflict]:
        state = self.dispatch(VoucherApplied(code=code, scope=scope, scope_key=scope_key, now=self._clock()))
        if state.last_conflict is not None:
            return Error(state.last_conflict)
        applied = state.bindings.get(scope, scope_key)
        if applied is None:
            return Error(
                VoucherConflict(
                    kind=ConflictKind.UNKNOWN_VOUCHER,
                    code=code,
                    scope_key=scope_key,
                    message=f"Voucher {code} was not applied",
                )
            )
        logger.info("voucher %s applied to %s (%d)", code, scope_key, applied.discount)
        return Ok(applied)

    async def remove_voucher(self, scope: VoucherScope, scope_key: str) -> CheckoutState:
        return self.dispatch(VoucherRemoved(scope=scope, scope_key=scope_key))

    # ═══════════════════════════════════════════════════════════════════════════
    # Cart
    # ═══════════════════════════════════════════════════════════════════════════

    async def set_quantity(self, line_id: str, quantity: int) -> Result[CheckoutState, CartError]:
        if quantity <= 0:
            return await self.remove_line(line_id)
        seq = self._next_cart_seq()
        updated = await from_awaitable(
            lambda: self._cart.update_quantity(line_id, quantity),
            on_error=lambda e: CartError(str(e) or "Could not update quantity"),
        )
        match updated:
            case Ok(lines):
                return Ok(await self._apply_cart(lines, seq))
            case Error(e):
                return Error(e)

    async def remove_line(self, line_id: str) -> Result[CheckoutState, CartError]:
        seq = self._next_cart_seq()
        updated = await from_awaitable(
            lambda: self._cart.delete_lines([line_id]),
            on_error=lambda e: CartError(str(e) or "Could not remove item"),
        )
        match updated:
            case Ok(lines):
                self._line_ids = self._line_ids - {line_id}
                return Ok(await self._apply_cart(lines, seq))
            case Error(e):
                return Error(e)

    def _next_cart_seq(self) -> int:
        self._cart_seq += 1
        return self._cart_seq

    async def _apply_cart(self, lines: Sequence[CartLine], seq: int) -> CheckoutState:
        """Apply a cart mutation's line list unless a later mutation was issued meanwhile."""
        chosen = self._checkout_lines(lines)
        if seq == self._cart_seq:
            await self._resolve_catalog(chosen)
        if seq != self._cart_seq:
            logger.debug("cart response %d superseded by %d", seq, self._cart_seq)
            return self._state
        self.dispatch(CartChanged(chosen, now=self._clock()))
        self._schedule_quote()
        return self._state

    # ═══════════════════════════════════════════════════════════════════════════
    # Shipping
    # ═══════════════════════════════════════════════════════════════════════════

    async def select_address(self, destination: Destination) -> CheckoutState:
        self.dispatch(AddressSelected(destination))
        self._schedule_quote()
        return self._state

    def _schedule_quote(self) -> None:
        self.dispatch(QuoteScheduled(self._quotes.trigger()))

    async def _quote_pass(self, generation: int) -> None:
        state = self.dispatch(QuoteStarted(generation))
        quoted = await from_awaitable(
            lambda: self._shipping.quote(state.selected_groups, state.destination, state.catalog),
            on_error=lambda e: e,
        )
        match quoted:
            case Ok(summary):
                pass
            case Error(e):
                logger.error("quote pass %d failed", generation, exc_info=e)
                summary = QuoteSummary.unavailable(QuoteFailure(QuoteFailureKind.TRANSPORT, GENERIC_QUOTE_FAILURE))
        self.dispatch(QuoteCompleted(generation=generation, summary=summary))

    async def flush_quote(self) -> CheckoutState:
        """Run the pending quote now instead of waiting out the debounce."""
        await self._quotes.flush()
        return self._state

    async def settle(self) -> CheckoutState:
        """Wait for quote passes already started by the debounce timer."""
        await self._quotes.drain()
        return self._state

    # ═══════════════════════════════════════════════════════════════════════════
    # Submit
    # ═══════════════════════════════════════════════════════════════════════════

    async def submit(
        self,
        payment: PaymentOptions | None = None,
        message: str | None = None,
    ) -> Result[SubmitReceipt, SubmitError]:
        """
        Submit once. Blocked unless the latest quote succeeded for every store.

        On success the pending checkout record is cleared. On failure the state
        is kept so the customer can retry.
        """
        state = self._state
        if not state.can_submit:
            return Error(SubmitError(SubmitErrorKind.BLOCKED, "; ".join(state.submit_blockers)))
        if state.destination is None:
            return Error(SubmitError(SubmitErrorKind.BLOCKED, "No shipping address selected"))

        payment = payment or PaymentOptions.cod()
        self.dispatch(SubmitStarted())
        payload = await build_payload(
            state.lines,
            state.selected_groups,
            state.catalog,
            state.bindings,
            state.vouchers.platform,
            address_id=state.destination.address_id,
            payment=payment,
            message=message,
            resolver=LivePlatformResolver(self._vouchers, state.lines, state.catalog, self._clock),
            default_kg=self._default_kg,
            light_max=self._light_max,
        )

        sent = await from_awaitable(
            lambda: self._submission.submit(payload),
            on_error=lambda e: SubmitError(SubmitErrorKind.TRANSPORT, str(e) or SUBMIT_FAILED_MESSAGE),
        )
        match sent:
            case Ok(receipt):
                pass
            case Error(e):
                return self._submit_failed(e)

        if not receipt.succeeded:
            return self._submit_failed(SubmitError(SubmitErrorKind.REJECTED, receipt.message or SUBMIT_FAILED_MESSAGE))
        if payment.method is PaymentMethod.PAYOS and not receipt.checkout_url:
            return self._submit_failed(SubmitError(SubmitErrorKind.REJECTED, PAYMENT_LINK_MISSING_MESSAGE))

        match await self._sessions.clear():
            case Ok(_):
                pass
            case Error(e):
                logger.warning("pending checkout not cleared: %s", e.message)

        self.dispatch(SubmitSucceeded(order_ids=receipt.order_ids, checkout_url=receipt.checkout_url))
        logger.info("order submitted: %s", ", ".join(receipt.order_ids) or receipt.checkout_url)
        return Ok(receipt)

    def _submit_failed(self, error: SubmitError) -> Result[SubmitReceipt, SubmitError]:
        logger.warning("submission failed (%s): %s", error.kind.name, error.message)
        self.dispatch(SubmitFailed(error.message))
        return Error(error)

    async def aclose(self) -> None:
        await self._quotes.aclose()


__all__ = ("CheckoutEngine", "SUBMIT_FAILED_MESSAGE", "PAYMENT_LINK_MISSING_MESSAGE")
