"""
Shipping address and its transitions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from emporium.shipping._regions import (
    COUNTRY_CODE,
    districts_of,
    is_known_region,
    is_metropolitan,
    postal_code_for,
    province_name,
)
from emporium.shipping._types import ZoneQuery

_POSTAL_CODE = re.compile(r"^\d{5}$")


def _clean(value: str) -> str:
    return " ".join(value.split())


@dataclass(frozen=True, slots=True)
class Address:
    """
    Address as entered during the shipping step.

    Use the with_* methods to mutate: a region change clears the district
    and the postal code.
    """

    region_code: str = ""
    district_or_province: str = ""
    postal_code: str = ""
    street: str = ""
    country_code: str = COUNTRY_CODE

    @property
    def is_metropolitan(self) -> bool:
        return is_metropolitan(self.region_code)

    @property
    def city(self) -> str:
        """City line for billing/shipping payloads."""
        if self.is_metropolitan:
            return self.district_or_province
        province = province_name(self.region_code) or ""
        if self.district_or_province and self.district_or_province != province:
            return f"{self.district_or_province}, {province}" if province else self.district_or_province
        return province

    def with_region(self, region_code: str) -> Address:
        region_code = region_code.strip()
        if region_code == self.region_code:
            return self
        return replace(self, region_code=region_code, district_or_province="", postal_code="")

    def with_district(self, district: str) -> Address:
        district = _clean(district)
        postal_code = self.postal_code
        if self.is_metropolitan:
            postal_code = postal_code_for(self.region_code, district) or ""
        return replace(self, district_or_province=district, postal_code=postal_code)

    def with_postal_code(self, postal_code: str) -> Address:
        return replace(self, postal_code=postal_code.strip())

    def with_street(self, street: str) -> Address:
        return replace(self, street=_clean(street))

    def zone_query(self) -> ZoneQuery | None:
        """
        Lookup key for the zone service, or None when nothing can be resolved yet.

        Metropolitan regions need a known district first.
        """
        if not is_known_region(self.region_code):
            return None
        if self.is_metropolitan:
            if self.district_or_province not in districts_of(self.region_code):
                return None
            return ZoneQuery(self.region_code, self.district_or_province)
        return ZoneQuery(self.region_code)

    def field_errors(self) -> dict[str, str]:
        """Per-field problems; empty when the address is complete for its region type."""
        errors: dict[str, str] = {}

        if not is_known_region(self.region_code):
            errors["region_code"] = "Select a region"
            return errors

        if self.is_metropolitan:
            if not self.district_or_province:
                errors["district_or_province"] = "Select a district"
            elif self.district_or_province not in districts_of(self.region_code):
                errors["district_or_province"] = "Unknown district for this region"
            if not _POSTAL_CODE.match(self.postal_code):
                errors["postal_code"] = "Postal code must have 5 digits"
        else:
            if not self.district_or_province:
                errors["district_or_province"] = "Enter a district or province"
            if self.postal_code and not _POSTAL_CODE.match(self.postal_code):
                errors["postal_code"] = "Postal code must have 5 digits"

        if not self.street:
            errors["street"] = "Enter a street address"

        return errors

    @property
    def is_complete(self) -> bool:
        return not self.field_errors()


__all__ = ("Address",)
