"""
Shipping orchestration — one carrier quote per store, all at once.

Each store's quote is a lazy computation that never fails: its failure is
folded into the `ShippingQuote`. The join returns every store's outcome and
the caller applies them together as one `QuoteSummary`.

Note: Uses combinators.parallel for the fan-out instead of raw asyncio.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from combinators import parallel
from kungfu import Error, LazyCoroResult, Ok, Result

from cartflow._types import NoError, Settled
from cartflow.cart import CartLine, StoreGroup
from cartflow.catalog import ProductInfo
from cartflow.lift import from_awaitable
from cartflow.shipping._tier import (
    DEFAULT_ITEM_WEIGHT_KG,
    LIGHT_MAX_GRAMS,
    item_weight_grams,
    select_tier,
)
from cartflow.shipping._types import (
    DESTINATION_INVALID_MESSAGE,
    GENERIC_QUOTE_FAILURE,
    INVALID_DISTRICT_CODE,
    CarrierHttpError,
    CarrierRequest,
    CarrierResponse,
    CarrierService,
    Destination,
    ManifestItem,
    QuoteFailure,
    QuoteFailureKind,
    QuoteSummary,
    ShippingQuote,
    district_number,
)

logger = logging.getLogger(__name__)

ADDRESS_REQUIRED_MESSAGE = "Please select a complete shipping address"
MISSING_ORIGIN_MESSAGE = "Missing store origin address"
FEE_MISSING_MESSAGE = "Shipping fee missing in carrier response"

# ═══════════════════════════════════════════════════════════════════════════════
# Failure Classification
# ═══════════════════════════════════════════════════════════════════════════════


def classify(status: int, message: str | None, code_message: str | None) -> QuoteFailure:
    """Carrier error reply → quote failure. Bad destination codes get their own kind."""
    text = message or ""
    if status == 400 and ("district" in text.lower() or code_message == INVALID_DISTRICT_CODE):
        return QuoteFailure(kind=QuoteFailureKind.DESTINATION_INVALID, message=DESTINATION_INVALID_MESSAGE)
    return QuoteFailure(kind=QuoteFailureKind.CARRIER, message=text or GENERIC_QUOTE_FAILURE)


def classify_exception(exc: Exception) -> QuoteFailure:
    if isinstance(exc, CarrierHttpError):
        return classify(exc.status, exc.message, exc.code_message)
    return QuoteFailure(kind=QuoteFailureKind.TRANSPORT, message=str(exc) or GENERIC_QUOTE_FAILURE)


def interpret(response: CarrierResponse) -> Result[int, QuoteFailure]:
    if response.code != 200:
        return Error(classify(response.code, response.message, response.code_message))
    if response.fee is None:
        return Error(QuoteFailure(kind=QuoteFailureKind.FEE_MISSING, message=FEE_MISSING_MESSAGE))
    return Ok(response.fee)


# ═══════════════════════════════════════════════════════════════════════════════
# Request Building
# ═══════════════════════════════════════════════════════════════════════════════


def origin_of(line: CartLine, catalog: Mapping[str, ProductInfo]) -> tuple[str | None, str | None]:
    """Origin codes of one line: catalog first, then the cart's own copy."""
    info = catalog.get(line.product_id)
    district = info.origin_district_code if info is not None and info.origin_district_code else None
    ward = info.origin_ward_code if info is not None and info.origin_ward_code else None
    return district or line.origin_district_code, ward or line.origin_ward_code


def build_request(
    group: StoreGroup,
    destination: Destination,
    catalog: Mapping[str, ProductInfo],
    *,
    default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
    light_max: int = LIGHT_MAX_GRAMS,
) -> Result[CarrierRequest, QuoteFailure]:
    """
    Carrier request for one store.

    Origin comes from the group's first selected line only.
    """
    lines = group.selected_lines
    if not lines:
        return Error(QuoteFailure(kind=QuoteFailureKind.MISSING_ORIGIN, message=MISSING_ORIGIN_MESSAGE))

    district, ward = origin_of(lines[0], catalog)
    from_district = district_number(district)
    if from_district is None or not ward:
        return Error(QuoteFailure(kind=QuoteFailureKind.MISSING_ORIGIN, message=MISSING_ORIGIN_MESSAGE))

    to_district = district_number(destination.district_id)
    if to_district is None or not destination.ward_code:
        return Error(QuoteFailure(kind=QuoteFailureKind.ADDRESS_INCOMPLETE, message=ADDRESS_REQUIRED_MESSAGE))

    items = tuple(
        ManifestItem(
            name=line.name or line.product_id,
            quantity=line.quantity,
            weight=item_weight_grams(catalog.get(line.product_id), default_kg),
        )
        for line in lines
    )
    weight = sum((item.weight * item.quantity for item in items), 0)
    return Ok(
        CarrierRequest(
            service_tier=select_tier(weight, light_max),
            from_district_id=from_district,
            from_ward_code=ward,
            to_district_id=to_district,
            to_ward_code=destination.ward_code,
            weight=weight,
            items=items,
        )
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Orchestrator
# ═══════════════════════════════════════════════════════════════════════════════


class ShippingOrchestrator:
    """
    Quote every store group in parallel and aggregate fail-closed.

    Example:
        shipping = ShippingOrchestrator(carrier)
        summary = await shipping.quote(groups, destination, snapshot)
        if summary.blocked:
            print(summary.error_message)
    """

    def __init__(
        self,
        carrier: CarrierService,
        *,
        default_kg: float = DEFAULT_ITEM_WEIGHT_KG,
        light_max: int = LIGHT_MAX_GRAMS,
    ) -> None:
        self._carrier = carrier
        self._default_kg = default_kg
        self._light_max = light_max

    async def quote(
        self,
        groups: Iterable[StoreGroup],
        destination: Destination | None,
        catalog: Mapping[str, ProductInfo],
    ) -> QuoteSummary:
        if destination is None or not destination.is_complete:
            return QuoteSummary.unavailable(
                QuoteFailure(kind=QuoteFailureKind.ADDRESS_INCOMPLETE, message=ADDRESS_REQUIRED_MESSAGE)
            )

        active = [g for g in groups if g.selected_lines]
        if not active:
            return QuoteSummary()

        logger.info("quoting shipping for %d store(s) to %s", len(active), destination.address_id)
        quotes: list[ShippingQuote] = []
        match await parallel(*[self._store_quote(g, destination, catalog) for g in active]):
            case Ok(found):
                quotes = list(found)
        summary = QuoteSummary(quotes={q.store_id: q for q in quotes})
        if summary.blocked:
            logger.warning("shipping blocked: %s", summary.error_message)
        else:
            logger.info("shipping total %d across %d store(s)", summary.total_fee, len(summary.quotes))
        return summary

    def _store_quote(
        self,
        group: StoreGroup,
        destination: Destination,
        catalog: Mapping[str, ProductInfo],
    ) -> Settled[ShippingQuote]:
        async def run() -> Result[ShippingQuote, NoError]:
            match await self._fee(group, destination, catalog):
                case Ok(fee):
                    return Ok(ShippingQuote(store_id=group.store_id, store_name=group.store_name, fee=fee))
                case Error(failure):
                    logger.warning("quote failed for %s (%s): %s", group.store_id, failure.kind.name, failure.message)
                    return Ok(ShippingQuote(store_id=group.store_id, store_name=group.store_name, error=failure))

        return LazyCoroResult(run)

    async def _fee(
        self,
        group: StoreGroup,
        destination: Destination,
        catalog: Mapping[str, ProductInfo],
    ) -> Result[int, QuoteFailure]:
        match build_request(
            group, destination, catalog, default_kg=self._default_kg, light_max=self._light_max
        ):
            case Ok(request):
                pass
            case Error(failure):
                return Error(failure)

        called = await from_awaitable(lambda: self._carrier.quote(request), on_error=classify_exception)
        match called:
            case Ok(response):
                return interpret(response)
            case Error(failure):
                return Error(failure)


__all__ = (
    "ADDRESS_REQUIRED_MESSAGE",
    "MISSING_ORIGIN_MESSAGE",
    "FEE_MISSING_MESSAGE",
    "classify",
    "classify_exception",
    "interpret",
    "origin_of",
    "build_request",
    "ShippingOrchestrator",
)
