"""
Personal data form.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from emporium.commerce import Customer
from emporium.checkout._types import CheckoutStep, GateRejected

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE = re.compile(r"^\+?[\d\s\-()]+$")
_DNI = re.compile(r"^\d{8}$")
_RUC = re.compile(r"^\d{11}$")
_FOREIGN = re.compile(r"^[A-Z0-9]{6,12}$")

PERSONAL_FIELDS = (
    "first_name",
    "first_last_name",
    "second_last_name",
    "document_id",
    "email",
    "phone",
)


class PersonalData(BaseModel):
    """
    Buyer identity. The document id is a DNI (8 digits), a RUC (11 digits)
    or a foreign document (6 to 12 letters and digits).
    """

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    first_name: str = Field(..., min_length=2, max_length=80)
    first_last_name: str = Field(..., min_length=2, max_length=80)
    second_last_name: str = Field(..., min_length=2, max_length=80)
    document_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1, max_length=254)
    phone: str = Field(..., min_length=1, max_length=32)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        if not _EMAIL.match(value):
            raise ValueError("enter a valid email address")
        return value.lower()

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        if not _PHONE.match(value) or sum(ch.isdigit() for ch in value) < 6:
            raise ValueError("enter a valid phone number")
        return value

    @field_validator("document_id")
    @classmethod
    def _document(cls, value: str) -> str:
        doc = value.replace(" ", "").upper()
        if not (_DNI.match(doc) or _RUC.match(doc) or _FOREIGN.match(doc)):
            raise ValueError("enter a DNI (8 digits), RUC (11 digits) or foreign document")
        return doc

    @property
    def last_name(self) -> str:
        return f"{self.first_last_name} {self.second_last_name}"

    def to_customer(self) -> Customer:
        return Customer(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            document_id=self.document_id,
        )


def _field_errors(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else "__root__"
        message = err["msg"].removeprefix("Value error, ")
        errors.setdefault(name, message)
    return errors


def validate_personal_data(raw: Mapping[str, Any]) -> Result[PersonalData, GateRejected]:
    """Validate locally; per-field messages on failure, no network involved."""
    try:
        return Ok(PersonalData.model_validate(dict(raw)))
    except ValidationError as exc:
        return Error(GateRejected(CheckoutStep.COLLECTING_PERSONAL_DATA, _field_errors(exc)))


__all__ = (
    "PERSONAL_FIELDS",
    "PersonalData",
    "validate_personal_data",
)
