"""
emporium — checkout orchestration and dynamic pricing for storefronts.

    from emporium import pricing as P    # Breakdown engine, free shipping
    from emporium import shipping as SH  # Zone resolution
    from emporium import checkout as CO  # State machine, commit, confirmation
"""

from emporium import cache
from emporium import saga
from emporium import idempotency
from emporium import lift
from emporium import pricing
from emporium import shipping
from emporium import coupons
from emporium import commerce
from emporium import payments
from emporium import checkout
from emporium.config import Settings
from emporium._types import (
    Lazy,
    Pure,
    Compensator,
    ServiceError,
)

__version__ = "0.1.0"

__all__ = (
    "cache",
    "saga",
    "idempotency",
    "lift",
    "pricing",
    "shipping",
    "coupons",
    "commerce",
    "payments",
    "checkout",
    "Settings",
    "Lazy",
    "Pure",
    "Compensator",
    "ServiceError",
)
