"""
Pending checkout record — bridges cart selection to the checkout flow.

One serialized record per customer: which lines were selected, which
product-scoped vouchers were already applied, which address was picked.
Cleared as soon as a submission succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto
from typing import Literal, Protocol

from kungfu import Error, Ok, Result
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cartflow._types import Clock, utcnow

logger = logging.getLogger(__name__)

PENDING_CHECKOUT_KEY = "checkout:payload:v1"

# ═══════════════════════════════════════════════════════════════════════════════
# Record
# ═══════════════════════════════════════════════════════════════════════════════


class AppliedVoucherRecord(BaseModel):
    """A product-scoped voucher applied on the cart page."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    product_id: str = Field(alias="productId")
    store_id: str | None = Field(default=None, alias="storeId")
    discount: int = 0
    kind: Literal["FIXED", "PERCENT"] = Field(default="FIXED", alias="type")


class PendingCheckout(BaseModel):
    """
    Serialized with the camelCase keys the storefront writes.

    Example:
        record = PendingCheckout(selected_line_ids=["l-1"], created_at=utcnow())
        raw = record.to_json()
        same = PendingCheckout.from_json(raw)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    selected_line_ids: tuple[str, ...] = Field(alias="selectedCartItemIds")
    store_vouchers: tuple[AppliedVoucherRecord, ...] = Field(default=(), alias="storeVouchers")
    selected_address_id: str | None = Field(default=None, alias="selectedAddressId")
    created_at: datetime = Field(alias="createdAt")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> PendingCheckout:
        return cls.model_validate_json(raw)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class SessionErrorKind(Enum):
    MISSING = auto()
    CORRUPT = auto()
    EMPTY = auto()


@dataclass(frozen=True, slots=True)
class SessionError:
    kind: SessionErrorKind
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol — Result-based
# ═══════════════════════════════════════════════════════════════════════════════


class SessionStore(Protocol):
    """
    Where the pending checkout record lives.

    All methods return Result for explicit error handling.
    """

    async def load(self) -> Result[PendingCheckout, SessionError]:
        ...

    async def save(self, record: PendingCheckout) -> Result[None, SessionError]:
        ...

    async def clear(self) -> Result[bool, SessionError]:
        """Remove the record. Returns Ok(True) if one existed."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store
# ═══════════════════════════════════════════════════════════════════════════════


class MemorySessionStore:
    """
    In-memory session store. Holds the raw JSON, as a browser would.

    Note: single process only; nothing survives a restart.
    """

    def __init__(self, ttl: timedelta | None = None, clock: Clock = utcnow) -> None:
        self._raw: dict[str, tuple[str, datetime]] = {}
        self._ttl = ttl
        self._clock = clock
        self._lock = asyncio.Lock()

    async def load(self) -> Result[PendingCheckout, SessionError]:
        async with self._lock:
            stored = self._raw.get(PENDING_CHECKOUT_KEY)
            if stored is None:
                return Error(SessionError(SessionErrorKind.MISSING, "No pending checkout"))

            raw, saved_at = stored
            if self._ttl is not None and self._clock() > saved_at + self._ttl:
                del self._raw[PENDING_CHECKOUT_KEY]
                logger.info("pending checkout expired")
                return Error(SessionError(SessionErrorKind.MISSING, "Pending checkout expired"))

            try:
                record = PendingCheckout.from_json(raw)
            except ValidationError as e:
                logger.warning("pending checkout unreadable: %s", e.error_count())
                return Error(SessionError(SessionErrorKind.CORRUPT, "Pending checkout is unreadable"))

            if not record.selected_line_ids:
                return Error(SessionError(SessionErrorKind.EMPTY, "No items selected for checkout"))
            return Ok(record)

    async def save(self, record: PendingCheckout) -> Result[None, SessionError]:
        async with self._lock:
            self._raw[PENDING_CHECKOUT_KEY] = (record.to_json(), self._clock())
            return Ok(None)

    async def save_raw(self, raw: str) -> None:
        """Store a record exactly as given. Lets callers hand over what a browser kept."""
        async with self._lock:
            self._raw[PENDING_CHECKOUT_KEY] = (raw, self._clock())

    async def clear(self) -> Result[bool, SessionError]:
        async with self._lock:
            return Ok(self._raw.pop(PENDING_CHECKOUT_KEY, None) is not None)


__all__ = (
    "PENDING_CHECKOUT_KEY",
    "AppliedVoucherRecord",
    "PendingCheckout",
    "SessionErrorKind",
    "SessionError",
    "SessionStore",
    "MemorySessionStore",
)
