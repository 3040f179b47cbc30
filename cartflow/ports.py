"""
Ports — every external collaborator the engine talks to.

Implement these against real services; the engine only sees the protocols.
"""

from cartflow.catalog import CatalogLookup, Tier
from cartflow.cart import CartPersistence
from cartflow.pricing import VoucherCatalog
from cartflow.shipping import CarrierService, CarrierHttpError, Scheduler
from cartflow.checkout import CheckoutSubmission, SessionStore

__all__ = (
    "CatalogLookup",
    "Tier",
    "CartPersistence",
    "VoucherCatalog",
    "CarrierService",
    "CarrierHttpError",
    "Scheduler",
    "CheckoutSubmission",
    "SessionStore",
)
