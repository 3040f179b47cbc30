"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine

from cartflow.config import Settings, configure_logging
from cartflow.pricing import Totals


# Formatting
def vnd(amount: int) -> str:
    return f"{amount:>10,} ₫"


def print_totals(totals: Totals) -> None:
    print(f"    Subtotal          {vnd(totals.subtotal_at_original)}")
    print(f"    Platform discount {vnd(-totals.platform_discount)}")
    print(f"    Voucher discount  {vnd(-totals.voucher_discount)}")
    print(f"    Shipping          {vnd(totals.shipping_fee)}")
    print(f"    Total             {vnd(totals.total)}")


def print_messages(messages: tuple[str, ...]) -> None:
    for message in messages:
        print(f"    ! {message}")


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]], *, log_level: str = "WARNING") -> None:
    configure_logging(Settings(log_level=log_level))
    logging.getLogger("cartflow").setLevel(log_level)
    asyncio.run(main())
