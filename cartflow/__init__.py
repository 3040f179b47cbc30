"""
cartflow — multi-store cart pricing and shipping-fee orchestration.

    from cartflow import catalog as K    # Product metadata cache
    from cartflow import cart as CT      # Cart lines, store grouping
    from cartflow import pricing as P    # Discounts, vouchers, validation
    from cartflow import shipping as S   # Per-store carrier quotes
    from cartflow import checkout as C   # Payload, submission, pending record
    from cartflow import state as St     # reduce(state, event)
"""

from cartflow import catalog
from cartflow import cart
from cartflow import pricing
from cartflow import shipping
from cartflow import checkout
from cartflow import state
from cartflow import lift
from cartflow._types import (
    Lazy,
    Settled,
    Money,
    Clock,
    NoError,
)
from cartflow.engine import CheckoutEngine

__version__ = "0.1.0"

__all__ = (
    "catalog",
    "cart",
    "pricing",
    "shipping",
    "checkout",
    "state",
    "lift",
    "Lazy",
    "Settled",
    "Money",
    "Clock",
    "NoError",
    "CheckoutEngine",
)
