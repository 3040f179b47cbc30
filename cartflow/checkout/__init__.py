"""
Checkout — payload assembly, submission types, pending checkout record.

    from cartflow import checkout as C

    payload = await C.build_payload(
        lines, groups, snapshot, bindings, view.platform,
        address_id="addr-1",
        payment=C.PaymentOptions.cod(),
    )
    body = payload.to_wire()
"""

from __future__ import annotations

from cartflow.checkout._types import (
    ProductItem,
    VariantItem,
    ComboItem,
    CheckoutItem,
    StoreVoucherCodes,
    PlatformVoucherLine,
    PaymentMethod,
    PaymentOptions,
    CheckoutPayload,
    SubmitReceipt,
    SubmitErrorKind,
    SubmitError,
    CheckoutSubmission,
)
from cartflow.checkout._build import (
    checkout_item,
    store_voucher_codes,
    platform_voucher_lines,
    build_payload,
)
from cartflow.checkout._session import (
    PENDING_CHECKOUT_KEY,
    AppliedVoucherRecord,
    PendingCheckout,
    SessionErrorKind,
    SessionError,
    SessionStore,
    MemorySessionStore,
)

__all__ = (
    # Types
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
    # Build
    "checkout_item",
    "store_voucher_codes",
    "platform_voucher_lines",
    "build_payload",
    # Session
    "PENDING_CHECKOUT_KEY",
    "AppliedVoucherRecord",
    "PendingCheckout",
    "SessionErrorKind",
    "SessionError",
    "SessionStore",
    "MemorySessionStore",
)
