"""
Core types for cartflow.

Re-exports from kungfu/combinators + custom type aliases.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# Re-export from combinators
from combinators import NoError

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Settled[T] = LazyCoroResult[T, NoError]
"""Lazy computation whose failures are already folded into T."""

# ═══════════════════════════════════════════════════════════════════════════════
# Money & Time
# ═══════════════════════════════════════════════════════════════════════════════

type Money = int
"""Amounts in the smallest currency unit (VND has no minor unit)."""

type Clock = Callable[[], datetime]
"""Source of 'now' for validity windows and session timestamps."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Re-exports from combinators
    "NoError",
    # Type aliases
    "Lazy",
    "Settled",
    "Money",
    "Clock",
    "utcnow",
)
