from __future__ import annotations

from decimal import Decimal

import pytest
from kungfu import Ok, Error

from emporium.checkout import (
    CheckoutForm,
    CheckoutStateMachine,
    CheckoutStep,
    InvalidTransition,
    validate_personal_data,
)
from emporium.pricing import ShippingMethod
from emporium.shipping import Address, ZoneResolution

from support import PERSONAL

Step = CheckoutStep
MIRAFLORES = Address().with_region("PE:LMA").with_district("Miraflores").with_street("Av. Larco 123")
DELIVERY = ShippingMethod(id="flat_rate:1", title="Delivery", cost=Decimal("10.00"))


def filled_form() -> CheckoutForm:
    query = MIRAFLORES.zone_query()
    return CheckoutForm(
        personal=dict(PERSONAL),
        address=MIRAFLORES,
        resolution=ZoneResolution(query=query, methods=(DELIVERY,)),
        shipping_method_id=DELIVERY.id,
    )


def at_payment_selection(form: CheckoutForm | None = None) -> CheckoutStateMachine:
    machine = CheckoutStateMachine(form or filled_form())
    machine.advance()
    machine.advance()
    assert machine.step is Step.SELECTING_PAYMENT_METHOD
    return machine


# ═══════════════════════════════════════════════════════════════════════════════
# Personal data
# ═══════════════════════════════════════════════════════════════════════════════


def test_personal_data_normalizes() -> None:
    match validate_personal_data({**PERSONAL, "document_id": "ab 12345 6"}):
        case Ok(data):
            assert data.email == "ana.quispe@example.pe"
            assert data.document_id == "AB123456"
            assert data.to_customer().last_name == "Quispe Rojas"
        case Error(rejected):
            raise AssertionError(rejected.fields)


def test_personal_data_field_errors() -> None:
    match validate_personal_data({**PERSONAL, "email": "not-an-email", "phone": "12", "document_id": "1"}):
        case Error(rejected):
            assert rejected.step is Step.COLLECTING_PERSONAL_DATA
            assert rejected.fields["email"] == "enter a valid email address"
            assert rejected.fields["phone"] == "enter a valid phone number"
            assert "document_id" in rejected.fields
        case Ok(_):
            raise AssertionError("expected field errors")


def test_missing_personal_fields_are_reported() -> None:
    match validate_personal_data({"first_name": "Ana"}):
        case Error(rejected):
            assert set(rejected.fields) == {
                "first_last_name",
                "second_last_name",
                "document_id",
                "email",
                "phone",
            }
        case Ok(_):
            raise AssertionError("expected field errors")


# ═══════════════════════════════════════════════════════════════════════════════
# Gates
# ═══════════════════════════════════════════════════════════════════════════════


def test_personal_gate_blocks_progress() -> None:
    machine = CheckoutStateMachine(CheckoutForm(personal={"first_name": "A"}))

    match machine.advance():
        case Error(rejected):
            assert "first_name" in rejected.fields
        case Ok(_):
            raise AssertionError("gate should hold")
    assert machine.step is Step.COLLECTING_PERSONAL_DATA


def test_shipping_gate_requires_method_in_resolution() -> None:
    form = filled_form()
    form.shipping_method_id = "flat_rate:99"
    machine = CheckoutStateMachine(form)
    machine.advance()

    match machine.advance():
        case Error(rejected):
            assert rejected.step is Step.COLLECTING_SHIPPING_ADDRESS
            assert rejected.fields == {
                "shipping_method": "The selected shipping method is not available for this address",
            }
        case Ok(_):
            raise AssertionError("gate should hold")


def test_shipping_gate_reports_failed_lookup() -> None:
    form = filled_form()
    form.shipping_method_id = None
    form.resolution = ZoneResolution(query=MIRAFLORES.zone_query(), failed=True)
    machine = CheckoutStateMachine(form)
    machine.advance()

    match machine.advance():
        case Error(rejected):
            assert rejected.fields["shipping_method"] == "Shipping methods could not be loaded, try again"
        case Ok(_):
            raise AssertionError("gate should hold")


def test_required_fields_per_step() -> None:
    machine = CheckoutStateMachine(filled_form())

    assert "document_id" in machine.required_fields()
    machine.advance()
    assert "postal_code" in machine.required_fields()


def test_back_keeps_entered_data() -> None:
    machine = at_payment_selection()

    assert machine.back() is Step.COLLECTING_SHIPPING_ADDRESS
    assert machine.back() is Step.COLLECTING_PERSONAL_DATA
    assert machine.form.address == MIRAFLORES
    assert machine.form.personal["email"] == PERSONAL["email"]


# ═══════════════════════════════════════════════════════════════════════════════
# Payment
# ═══════════════════════════════════════════════════════════════════════════════


def test_begin_payment_requires_payment_method() -> None:
    machine = at_payment_selection()

    match machine.begin_payment():
        case Error(rejected):
            assert rejected.fields == {"payment_method": "Select a payment method"}
        case Ok(_):
            raise AssertionError("gate should hold")


def test_begin_payment_rechecks_shipping() -> None:
    machine = at_payment_selection()
    machine.form.payment_method = "izipay"
    machine.form.resolution = ZoneResolution(query=MIRAFLORES.zone_query())

    match machine.begin_payment():
        case Error(rejected):
            assert "shipping_method" in rejected.fields
        case Ok(_):
            raise AssertionError("stale selection must not reach payment")


def test_cancelled_attempt_can_reenter_payment_selection() -> None:
    machine = at_payment_selection()
    machine.form.payment_method = "izipay"
    transitions: list[tuple[CheckoutStep, CheckoutStep]] = []
    machine.subscribe(lambda previous, step: transitions.append((previous, step)))

    match machine.begin_payment():
        case Ok(step):
            assert step is Step.AWAITING_PAYMENT_COMPLETION
        case Error(rejected):
            raise AssertionError(rejected.fields)
    machine.cancel()
    assert machine.step.is_terminal
    machine.restart()

    assert machine.step is Step.SELECTING_PAYMENT_METHOD
    assert transitions == [
        (Step.SELECTING_PAYMENT_METHOD, Step.AWAITING_PAYMENT_COMPLETION),
        (Step.AWAITING_PAYMENT_COMPLETION, Step.CANCELLED),
        (Step.CANCELLED, Step.SELECTING_PAYMENT_METHOD),
    ]


def test_failed_attempt_can_reenter_payment_selection() -> None:
    machine = at_payment_selection()
    machine.form.payment_method = "izipay"
    machine.begin_payment()
    machine.fail()

    assert machine.restart() is Step.SELECTING_PAYMENT_METHOD


def test_completed_is_final() -> None:
    machine = at_payment_selection()
    machine.form.payment_method = "izipay"
    machine.begin_payment()
    machine.complete()

    assert machine.can(Step.SELECTING_PAYMENT_METHOD) is False
    with pytest.raises(InvalidTransition):
        machine.restart()


def test_cannot_skip_steps() -> None:
    machine = CheckoutStateMachine(filled_form())

    with pytest.raises(InvalidTransition):
        machine.begin_payment()
    with pytest.raises(InvalidTransition):
        machine.cancel()
    with pytest.raises(InvalidTransition):
        machine.back()
