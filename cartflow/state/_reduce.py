"""
reduce(state, event) -> state.

Synchronous and pure apart from logging. Cart, catalog and voucher-catalog
events run a validation pass; its messages are appended once the pass is
complete. Quote results from a pass older than the latest started one are
dropped.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from types import MappingProxyType

from kungfu import Error, Ok

from cartflow.pricing import (
    ConflictKind,
    VoucherConflict,
    VoucherScope,
    apply_voucher,
    owning_store,
    validate,
)
from cartflow.shipping import QuoteSummary
from cartflow.state._events import (
    AddressSelected,
    CartChanged,
    CatalogResolved,
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
)
from cartflow.state._state import CheckoutState

logger = logging.getLogger(__name__)


def revalidate(state: CheckoutState, now: datetime | None = None) -> CheckoutState:
    checked = validate(state.bindings, state.lines, state.catalog, state.vouchers, now)
    if not checked.changed:
        return state
    return replace(state, bindings=checked.bindings, messages=(*state.messages, *checked.messages))


def restore_vouchers(state: CheckoutState, now: datetime) -> CheckoutState:
    """Re-bind vouchers carried over from the cart page, once the voucher catalog is in."""
    bindings = state.bindings
    messages: list[str] = []
    for record in state.restoring:
        store_id = owning_store(VoucherScope.PRODUCT, record.product_id, state.catalog)
        voucher = state.vouchers.find(record.code, VoucherScope.PRODUCT, store_id or record.store_id)
        if voucher is None:
            messages.append(f"Voucher {record.code} is no longer valid and was removed")
            continue
        match apply_voucher(bindings, voucher, VoucherScope.PRODUCT, record.product_id, state.lines, state.catalog, now):
            case Ok(updated):
                bindings = updated
            case Error(conflict):
                messages.append(conflict.message)
    return replace(state, bindings=bindings, restoring=(), messages=(*state.messages, *messages))


def _quote_messages(summary: QuoteSummary) -> tuple[str, ...]:
    if summary.address_error is not None:
        return (summary.address_error.message,)
    return tuple(
        f"{q.store_name}: {q.error.message}" for q in summary.failures if q.error is not None
    )


def reduce(state: CheckoutState, event: Event) -> CheckoutState:
    match event:
        case SessionRestored(record=record):
            return replace(state, restoring=record.store_vouchers)

        case CartChanged(lines=lines, now=now):
            return revalidate(replace(state, lines=lines), now)

        case CatalogResolved(entries=entries, now=now):
            merged = MappingProxyType({**state.catalog, **entries})
            return revalidate(replace(state, catalog=merged), now)

        case VoucherCatalogLoaded(view=view, now=now):
            loaded = replace(state, vouchers=view)
            if loaded.restoring:
                loaded = restore_vouchers(loaded, now)
            return revalidate(loaded, now)

        case AddressSelected(destination=destination):
            return replace(state, destination=destination)

        case VoucherApplied(code=code, scope=scope, scope_key=scope_key, now=now):
            store_id = owning_store(scope, scope_key, state.catalog)
            voucher = state.vouchers.find(code, scope, store_id)
            if voucher is None:
                conflict = VoucherConflict(
                    kind=ConflictKind.UNKNOWN_VOUCHER,
                    code=code,
                    scope_key=scope_key,
                    message=f"Voucher {code} is not available here",
                )
                return replace(state, last_conflict=conflict, messages=(*state.messages, conflict.message))
            match apply_voucher(state.bindings, voucher, scope, scope_key, state.lines, state.catalog, now):
                case Ok(bindings):
                    return replace(state, bindings=bindings, last_conflict=None)
                case Error(conflict):
                    return replace(state, last_conflict=conflict, messages=(*state.messages, conflict.message))

        case VoucherRemoved(scope=scope, scope_key=scope_key):
            return replace(state, bindings=state.bindings.unbind(scope, scope_key))

        case QuoteScheduled(generation=generation):
            return replace(state, scheduled_generation=max(state.scheduled_generation, generation))

        case QuoteStarted(generation=generation):
            if generation < state.quote_generation:
                logger.debug("quote pass %d started after %d; ignored", generation, state.quote_generation)
                return state
            return replace(
                state,
                quote_generation=generation,
                scheduled_generation=max(state.scheduled_generation, generation),
                quoting=True,
            )

        case QuoteCompleted(generation=generation, summary=summary):
            if generation != state.quote_generation:
                logger.debug("stale quote pass %d discarded (latest %d)", generation, state.quote_generation)
                return state
            return replace(
                state,
                quote=summary,
                applied_generation=generation,
                quoting=False,
                messages=(*state.messages, *_quote_messages(summary)),
            )

        case SubmitStarted():
            return replace(state, submitting=True, submit_error=None)

        case SubmitFailed(message=message):
            return replace(state, submitting=False, submit_error=message, messages=(*state.messages, message))

        case SubmitSucceeded(order_ids=order_ids, checkout_url=checkout_url):
            return replace(state, submitting=False, order_ids=order_ids, checkout_url=checkout_url, submit_error=None)

        case MessagesDrained():
            return replace(state, messages=(), last_conflict=None)

    return state


__all__ = ("reduce", "revalidate", "restore_vouchers")
