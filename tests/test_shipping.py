"""Shipping orchestration tests."""

from __future__ import annotations

from dataclasses import replace

import pytest
from kungfu import Error, Ok

from cartflow.cart import CartLine, group
from cartflow.catalog import ProductInfo
from cartflow.shipping import (
    ADDRESS_REQUIRED_MESSAGE,
    DESTINATION_INVALID_MESSAGE,
    FEE_MISSING_MESSAGE,
    MISSING_ORIGIN_MESSAGE,
    CarrierHttpError,
    CarrierResponse,
    Destination,
    QuoteFailureKind,
    ServiceTier,
    ShippingOrchestrator,
    build_request,
    classify,
    classify_exception,
)

from .conftest import S1_DISTRICT, S2_DISTRICT, FakeCarrier, line


def fees(s1: int = 20_000, s2: int = 15_000) -> FakeCarrier:
    return FakeCarrier(replies={S1_DISTRICT: CarrierResponse(200, fee=s1), S2_DISTRICT: CarrierResponse(200, fee=s2)})


class TestClassify:
    """Carrier errors to quote failures."""

    def test_district_message(self) -> None:
        failure = classify(400, "District is invalid", None)

        assert failure.kind is QuoteFailureKind.DESTINATION_INVALID
        assert failure.message == DESTINATION_INVALID_MESSAGE

    def test_district_code_message(self) -> None:
        assert classify(400, "Bad request", "SEND_DISTRICT_IS_INVALID").kind is QuoteFailureKind.DESTINATION_INVALID

    def test_other_carrier_errors_keep_their_message(self) -> None:
        failure = classify(500, "Upstream timeout", None)

        assert failure.kind is QuoteFailureKind.CARRIER
        assert failure.message == "Upstream timeout"

    def test_transport_exception(self) -> None:
        assert classify_exception(ConnectionError("reset")).kind is QuoteFailureKind.TRANSPORT

    def test_http_exception(self) -> None:
        failure = classify_exception(CarrierHttpError(400, "district not served"))

        assert failure.kind is QuoteFailureKind.DESTINATION_INVALID


class TestBuildRequest:
    """One store's carrier request."""

    def test_wire_shape(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        s1 = group(cart_lines, products)[0]

        match build_request(s1, destination, products):
            case Ok(request):
                body = request.to_wire()
            case Error(failure):
                pytest.fail(failure.message)

        assert body["service_type_id"] == ServiceTier.LIGHT.value
        assert body["from_district_id"] == S1_DISTRICT
        assert body["to_district_id"] == 1442
        assert body["to_ward_code"] == "20308"
        assert body["weight"] == 800 + 1_200
        assert [item["weight"] for item in body["items"]] == [800, 1_200]
        assert body["items"][0]["length"] == 1

    def test_origin_from_first_selected_line_only(
        self, products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        catalog = {**products, "P1": replace(products["P1"], origin_district_code=None)}
        s1 = group([line("A", "P1", 1, 1), line("B", "P2", 1, 1)], catalog)[0]

        match build_request(s1, destination, catalog):
            case Ok(_):
                pytest.fail("origin must come from the first line")
            case Error(failure):
                assert failure.kind is QuoteFailureKind.MISSING_ORIGIN
                assert failure.message == MISSING_ORIGIN_MESSAGE

    def test_origin_falls_back_to_cart_codes(
        self, products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        catalog = {"P1": replace(products["P1"], origin_district_code=None, origin_ward_code=None)}
        first = line("A", "P1", 1, 1, origin_district_code="1999", origin_ward_code="W9")

        match build_request(group([first], catalog)[0], destination, catalog):
            case Ok(request):
                assert request.from_district_id == 1999
                assert request.from_ward_code == "W9"
            case Error(failure):
                pytest.fail(failure.message)

    @pytest.mark.parametrize("code", ["HN-01", "\u00b2", "\u0661\u0664"])
    def test_non_numeric_origin_district(
        self, code: str, products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        catalog = {"P1": replace(products["P1"], origin_district_code=code)}

        match build_request(group([line("A", "P1", 1, 1)], catalog)[0], destination, catalog):
            case Ok(_):
                pytest.fail("expected a missing origin")
            case Error(failure):
                assert failure.kind is QuoteFailureKind.MISSING_ORIGIN


class TestOrchestrator:
    """Aggregate quoting across stores."""

    async def test_all_stores_succeed(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        carrier = fees()

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, products), destination, products)

        assert not summary.blocked
        assert summary.total_fee == 35_000
        assert {q.store_id: q.fee for q in summary.quotes.values()} == {"S1": 20_000, "S2": 15_000}
        assert len(carrier.requests) == 2

    async def test_one_failure_zeroes_the_total(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        carrier = FakeCarrier(
            replies={
                S1_DISTRICT: CarrierResponse(200, fee=20_000),
                S2_DISTRICT: CarrierResponse(400, message="District is invalid"),
            }
        )

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, products), destination, products)

        assert summary.blocked
        assert summary.total_fee == 0
        assert summary.quotes["S1"].fee == 20_000
        assert summary.error_message == f"Store S2: {DESTINATION_INVALID_MESSAGE}"

    async def test_fee_missing(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        carrier = FakeCarrier(replies={S1_DISTRICT: CarrierResponse(200, fee=None)})

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, products), destination, products)

        failure = summary.quotes["S1"].error
        assert failure is not None
        assert failure.kind is QuoteFailureKind.FEE_MISSING
        assert failure.message == FEE_MISSING_MESSAGE
        assert summary.total_fee == 0

    async def test_transport_failure(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        carrier = FakeCarrier(replies={S2_DISTRICT: ConnectionError("connection reset")})

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, products), destination, products)

        failure = summary.quotes["S2"].error
        assert failure is not None
        assert failure.kind is QuoteFailureKind.TRANSPORT
        assert summary.blocked

    async def test_missing_origin_skips_the_carrier(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        catalog = {**products, "P3": replace(products["P3"], origin_district_code=None)}
        carrier = fees()

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, catalog), destination, catalog)

        assert [r.from_district_id for r in carrier.requests] == [S1_DISTRICT]
        assert summary.quotes["S2"].error is not None
        assert summary.blocked

    async def test_superscript_origin_is_a_store_error(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        catalog = {**products, "P3": replace(products["P3"], origin_district_code="\u00b2")}
        carrier = fees()

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, catalog), destination, catalog)

        failure = summary.quotes["S2"].error
        assert failure is not None
        assert failure.kind is QuoteFailureKind.MISSING_ORIGIN
        assert failure.message == MISSING_ORIGIN_MESSAGE
        assert summary.quotes["S1"].fee == 20_000
        assert summary.blocked

    @pytest.mark.parametrize(
        "where",
        [
            None,
            Destination("a", None, "W1"),
            Destination("a", "DN", "W1"),
            Destination("a", "\u00b2", "W1"),
            Destination("a", "1442", ""),
        ],
    )
    async def test_incomplete_destination(
        self,
        where: Destination | None,
        cart_lines: list[CartLine],
        products: dict[str, ProductInfo],
    ) -> None:
        carrier = fees()

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, products), where, products)

        assert carrier.requests == []
        assert summary.blocked
        assert summary.error_message == ADDRESS_REQUIRED_MESSAGE
        assert summary.total_fee == 0

    async def test_no_selected_lines(self, products: dict[str, ProductInfo], destination: Destination) -> None:
        carrier = fees()
        groups = group([line("A", "P1", 1, 1, selected=False)], products)

        summary = await ShippingOrchestrator(carrier).quote(groups, destination, products)

        assert carrier.requests == []
        assert not summary.blocked
        assert summary.total_fee == 0

    async def test_stores_are_quoted_concurrently(
        self, cart_lines: list[CartLine], products: dict[str, ProductInfo], destination: Destination
    ) -> None:
        carrier = fees()
        carrier.delays = {S1_DISTRICT: 0.02, S2_DISTRICT: 0.02}

        summary = await ShippingOrchestrator(carrier).quote(group(cart_lines, products), destination, products)

        assert carrier.peak == 2
        assert summary.total_fee == 35_000
