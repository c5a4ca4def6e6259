"""
Shipping — addresses, zone lookup and method resolution.

    from emporium import shipping as SH

    address = SH.Address().with_region("PE:LMA").with_district("Miraflores")
    resolution = await resolver.resolve(address)
"""

from __future__ import annotations

from emporium.shipping._regions import (
    COUNTRY_CODE,
    LIMA_METROPOLITANA,
    CALLAO,
    METROPOLITAN_DISTRICTS,
    PROVINCE_NAMES,
    is_metropolitan,
    districts_of,
    postal_code_for,
    province_name,
    is_known_region,
)
from emporium.shipping._types import (
    ShippingMethod,
    ZoneMethod,
    ShippingZone,
    ZoneQuery,
    ZoneSource,
    ZoneResolution,
)
from emporium.shipping._address import Address
from emporium.shipping._resolver import (
    match_methods,
    reconcile_selection,
    ShippingZoneResolver,
)

__all__ = (
    "COUNTRY_CODE",
    "LIMA_METROPOLITANA",
    "CALLAO",
    "METROPOLITAN_DISTRICTS",
    "PROVINCE_NAMES",
    "is_metropolitan",
    "districts_of",
    "postal_code_for",
    "province_name",
    "is_known_region",
    "ShippingMethod",
    "ZoneMethod",
    "ShippingZone",
    "ZoneQuery",
    "ZoneSource",
    "ZoneResolution",
    "Address",
    "match_methods",
    "reconcile_selection",
    "ShippingZoneResolver",
)
