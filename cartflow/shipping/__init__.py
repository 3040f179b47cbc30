"""
Shipping — per-store carrier quotes, service tiers, debounced re-quoting.

    from cartflow import shipping as S

    shipping = S.ShippingOrchestrator(carrier)
    summary = await shipping.quote(groups, destination, snapshot)
    fee = summary.total_fee          # 0 whenever any store failed
"""

from __future__ import annotations

from cartflow.shipping._types import (
    GENERIC_QUOTE_FAILURE,
    DESTINATION_INVALID_MESSAGE,
    INVALID_DISTRICT_CODE,
    ServiceTier,
    district_number,
    Destination,
    ManifestItem,
    CarrierRequest,
    CarrierResponse,
    CarrierHttpError,
    CarrierService,
    QuoteFailureKind,
    QuoteFailure,
    ShippingQuote,
    QuoteSummary,
)
from cartflow.shipping._tier import (
    DEFAULT_ITEM_WEIGHT_KG,
    LIGHT_MAX_GRAMS,
    item_weight_grams,
    line_weight_grams,
    lines_weight_grams,
    group_weight_grams,
    select_tier,
    service_tiers,
)
from cartflow.shipping._orchestrate import (
    ADDRESS_REQUIRED_MESSAGE,
    MISSING_ORIGIN_MESSAGE,
    FEE_MISSING_MESSAGE,
    classify,
    classify_exception,
    interpret,
    origin_of,
    build_request,
    ShippingOrchestrator,
)
from cartflow.shipping._schedule import (
    Cancel,
    QuotePass,
    Scheduler,
    LoopScheduler,
    QuoteScheduler,
)

__all__ = (
    # Types
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
    # Tiers
    "DEFAULT_ITEM_WEIGHT_KG",
    "LIGHT_MAX_GRAMS",
    "item_weight_grams",
    "line_weight_grams",
    "lines_weight_grams",
    "group_weight_grams",
    "select_tier",
    "service_tiers",
    # Orchestration
    "ADDRESS_REQUIRED_MESSAGE",
    "MISSING_ORIGIN_MESSAGE",
    "FEE_MISSING_MESSAGE",
    "classify",
    "classify_exception",
    "interpret",
    "origin_of",
    "build_request",
    "ShippingOrchestrator",
    # Scheduling
    "Cancel",
    "QuotePass",
    "Scheduler",
    "LoopScheduler",
    "QuoteScheduler",
)
