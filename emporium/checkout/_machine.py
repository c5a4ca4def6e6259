"""
Checkout state machine — step gates over an injected form.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from kungfu import Result, Ok, Error

from emporium.checkout._forms import PERSONAL_FIELDS, PersonalData, validate_personal_data
from emporium.checkout._types import CheckoutStep, GateRejected, InvalidTransition
from emporium.shipping import Address, ZoneResolution

logger = structlog.get_logger(__name__)

Step = CheckoutStep

TRANSITIONS: Mapping[CheckoutStep, frozenset[CheckoutStep]] = {
    Step.COLLECTING_PERSONAL_DATA: frozenset({Step.COLLECTING_SHIPPING_ADDRESS}),
    Step.COLLECTING_SHIPPING_ADDRESS: frozenset({
        Step.SELECTING_PAYMENT_METHOD,
        Step.COLLECTING_PERSONAL_DATA,
    }),
    Step.SELECTING_PAYMENT_METHOD: frozenset({
        Step.AWAITING_PAYMENT_COMPLETION,
        Step.COLLECTING_SHIPPING_ADDRESS,
    }),
    Step.AWAITING_PAYMENT_COMPLETION: frozenset({
        Step.COMPLETED,
        Step.CANCELLED,
        Step.FAILED,
    }),
    Step.CANCELLED: frozenset({Step.SELECTING_PAYMENT_METHOD}),
    Step.FAILED: frozenset({Step.SELECTING_PAYMENT_METHOD}),
    Step.COMPLETED: frozenset(),
}

REQUIRED_FIELDS: Mapping[CheckoutStep, tuple[str, ...]] = {
    Step.COLLECTING_PERSONAL_DATA: PERSONAL_FIELDS,
    Step.COLLECTING_SHIPPING_ADDRESS: (
        "region_code",
        "district_or_province",
        "postal_code",
        "street",
        "shipping_method",
    ),
    Step.SELECTING_PAYMENT_METHOD: ("payment_method",),
}


@dataclass(slots=True)
class CheckoutForm:
    """Everything the user has entered so far. Survives backward navigation."""

    personal: dict[str, Any] = field(default_factory=dict)
    address: Address = field(default_factory=Address)
    resolution: ZoneResolution | None = None
    shipping_method_id: str | None = None
    payment_method: str | None = None

    def personal_data(self) -> Result[PersonalData, GateRejected]:
        return validate_personal_data(self.personal)


def shipping_gate(form: CheckoutForm) -> dict[str, str]:
    """Address completeness plus a selected method that is in the resolved set."""
    errors = form.address.field_errors()
    resolution = form.resolution
    if form.shipping_method_id is None:
        if resolution is not None and resolution.failed:
            errors["shipping_method"] = "Shipping methods could not be loaded, try again"
        else:
            errors["shipping_method"] = "Select a shipping method"
    elif resolution is None or not resolution.contains(form.shipping_method_id):
        errors["shipping_method"] = "The selected shipping method is not available for this address"
    return errors


type StepListener = Callable[[CheckoutStep, CheckoutStep], None]


class CheckoutStateMachine:
    """
    Gates progression through the checkout steps.

    Gate failures come back as Error(GateRejected); transitions the table
    does not allow raise InvalidTransition.

    Example:
        machine = CheckoutStateMachine(form)
        match machine.advance():
            case Ok(step): ...
            case Error(rejected): rejected.fields
    """

    def __init__(self, form: CheckoutForm) -> None:
        self._form = form
        self._step = Step.COLLECTING_PERSONAL_DATA
        self._listeners: list[StepListener] = []

    @property
    def step(self) -> CheckoutStep:
        return self._step

    @property
    def form(self) -> CheckoutForm:
        return self._form

    def subscribe(self, listener: StepListener) -> None:
        self._listeners.append(listener)

    def required_fields(self) -> tuple[str, ...]:
        return REQUIRED_FIELDS.get(self._step, ())

    def can(self, target: CheckoutStep) -> bool:
        return target in TRANSITIONS[self._step]

    def _move(self, target: CheckoutStep) -> CheckoutStep:
        if not self.can(target):
            raise InvalidTransition(self._step, target)
        previous, self._step = self._step, target
        logger.debug("checkout step", previous=previous.value, step=target.value)
        for listener in self._listeners:
            listener(previous, target)
        return target

    def _gate(self, errors: dict[str, str], target: CheckoutStep) -> Result[CheckoutStep, GateRejected]:
        if errors:
            return Error(GateRejected(self._step, errors))
        return Ok(self._move(target))

    # ═══════════════════════════════════════════════════════════════════════════
    # Data collection
    # ═══════════════════════════════════════════════════════════════════════════

    def advance(self) -> Result[CheckoutStep, GateRejected]:
        """Leave a data-collection step if its gate holds."""
        match self._step:
            case Step.COLLECTING_PERSONAL_DATA:
                match self._form.personal_data():
                    case Error(rejected):
                        return Error(rejected)
                    case Ok(_):
                        return Ok(self._move(Step.COLLECTING_SHIPPING_ADDRESS))
            case Step.COLLECTING_SHIPPING_ADDRESS:
                return self._gate(shipping_gate(self._form), Step.SELECTING_PAYMENT_METHOD)
            case _:
                raise InvalidTransition(self._step, "next step")

    def back(self) -> CheckoutStep:
        match self._step:
            case Step.SELECTING_PAYMENT_METHOD:
                return self._move(Step.COLLECTING_SHIPPING_ADDRESS)
            case Step.COLLECTING_SHIPPING_ADDRESS:
                return self._move(Step.COLLECTING_PERSONAL_DATA)
            case _:
                raise InvalidTransition(self._step, "previous step")

    # ═══════════════════════════════════════════════════════════════════════════
    # Payment
    # ═══════════════════════════════════════════════════════════════════════════

    def begin_payment(self) -> Result[CheckoutStep, GateRejected]:
        """Payment method chosen and submission initiated; shipping is re-checked."""
        if self._step is not Step.SELECTING_PAYMENT_METHOD:
            raise InvalidTransition(self._step, Step.AWAITING_PAYMENT_COMPLETION)
        errors = shipping_gate(self._form)
        if not self._form.payment_method:
            errors["payment_method"] = "Select a payment method"
        return self._gate(errors, Step.AWAITING_PAYMENT_COMPLETION)

    def complete(self) -> CheckoutStep:
        return self._move(Step.COMPLETED)

    def fail(self) -> CheckoutStep:
        return self._move(Step.FAILED)

    def cancel(self) -> CheckoutStep:
        return self._move(Step.CANCELLED)

    def restart(self) -> CheckoutStep:
        """Re-enter payment method selection after a cancelled or failed attempt."""
        return self._move(Step.SELECTING_PAYMENT_METHOD)


__all__ = (
    "TRANSITIONS",
    "REQUIRED_FIELDS",
    "CheckoutForm",
    "shipping_gate",
    "StepListener",
    "CheckoutStateMachine",
)
