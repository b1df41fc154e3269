import pytest

from domain.checkout.session import CheckoutStep, PaymentMethod
from domain.common.exceptions import (
    CheckoutValidationException,
    InvalidStepTransitionException,
    MethodAlreadySelectedException,
)


@pytest.mark.asyncio
async def test_wallet_collecting_steps(make_flow, navigator):
    flow = make_flow(12000)
    assert flow.available_actions() == ["next", "cancel"]

    flow.select_method("mobile_money")
    assert await flow.next() == CheckoutStep.OPERATOR
    flow.select_operator("orange")
    assert await flow.next() == CheckoutStep.DETAILS
    flow.enter_phone_number("07 12 34 56 78")
    assert flow.session.phone_number == "0712345678"
    assert await flow.next() == CheckoutStep.CONFIRMATION

    assert flow.can_confirm()
    assert flow.available_actions() == ["previous", "confirm", "cancel"]
    assert [loc.target for loc in navigator.history] == [
        CheckoutStep.OPERATOR,
        CheckoutStep.DETAILS,
        CheckoutStep.CONFIRMATION,
    ]


@pytest.mark.asyncio
async def test_cash_on_delivery_skips_operator_steps(make_flow):
    flow = make_flow()
    flow.select_method(PaymentMethod.CASH_ON_DELIVERY)
    assert await flow.next() == CheckoutStep.CONFIRMATION
    assert flow.previous() == CheckoutStep.METHOD


@pytest.mark.asyncio
async def test_next_requires_method(make_flow):
    flow = make_flow()
    with pytest.raises(CheckoutValidationException) as exc:
        await flow.next()
    assert exc.value.field == "method"
    assert flow.session.step == CheckoutStep.METHOD


@pytest.mark.asyncio
async def test_next_requires_operator(make_flow):
    flow = make_flow()
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    await flow.next()
    with pytest.raises(CheckoutValidationException) as exc:
        await flow.next()
    assert exc.value.field == "operator"


@pytest.mark.asyncio
async def test_next_rejects_number_of_other_network(make_flow):
    flow = make_flow()
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    await flow.next()
    flow.select_operator("mtn")
    await flow.next()
    flow.enter_phone_number("0712345678")
    with pytest.raises(CheckoutValidationException) as exc:
        await flow.next()
    assert exc.value.field == "phone_number"
    assert flow.session.step == CheckoutStep.DETAILS
    assert not flow.can_confirm()


@pytest.mark.asyncio
async def test_changing_operator_clears_phone(make_flow):
    flow = make_flow()
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    await flow.next()
    flow.select_operator("orange")
    await flow.next()
    flow.enter_phone_number("0712345678")
    flow.previous()
    flow.select_operator("orange")
    assert flow.session.phone_number == "0712345678"
    flow.select_operator("moov")
    assert flow.session.phone_number == ""


@pytest.mark.asyncio
async def test_method_locked_after_leaving_method_step(make_flow):
    flow = make_flow()
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    await flow.next()
    assert flow.session.method_locked
    with pytest.raises(InvalidStepTransitionException):
        flow.select_method(PaymentMethod.CASH_ON_DELIVERY)

    flow.previous()
    assert not flow.session.method_locked
    flow.select_method(PaymentMethod.CASH_ON_DELIVERY)
    assert flow.session.method == PaymentMethod.CASH_ON_DELIVERY


def test_locked_method_raises_on_method_step(make_flow):
    flow = make_flow()
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    flow.session.method_locked = True
    with pytest.raises(MethodAlreadySelectedException):
        flow.select_method(PaymentMethod.CASH_ON_DELIVERY)


def test_previous_from_method_is_invalid(make_flow):
    flow = make_flow()
    with pytest.raises(InvalidStepTransitionException):
        flow.previous()


@pytest.mark.asyncio
async def test_delivery_info_only_on_method_or_confirmation(make_flow):
    flow = make_flow()
    flow.update_delivery_info(delivery_address="Plateau", customer_phone="07 00 00 00 01")
    assert flow.session.cash_on_delivery.delivery_address == "Plateau"
    assert flow.session.cash_on_delivery.customer_phone == "0700000001"

    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    await flow.next()
    with pytest.raises(InvalidStepTransitionException):
        flow.update_delivery_info(delivery_address="Yopougon")


@pytest.mark.asyncio
async def test_cancel_discards_draft(make_flow, drafts, navigator):
    from conftest import make_start

    flow = make_flow()
    await drafts.save(flow.session.session_id, make_start())
    await flow.cancel()
    assert flow.session.step == CheckoutStep.CANCELLED
    assert navigator.current.target == CheckoutStep.CANCELLED
    assert await drafts.restore(flow.session.session_id) is None
    assert flow.available_actions() == []
    with pytest.raises(InvalidStepTransitionException):
        await flow.cancel()


def test_view_reflects_session(make_flow):
    flow = make_flow(7500, subtotal=7000, fees=1000, discount=500)
    view = flow.view()
    assert view.step == CheckoutStep.METHOD
    assert view.amount == 7500 and view.fees == 1000 and view.discount == 500
    assert view.can_confirm is False
    assert view.terminal is None


@pytest.mark.asyncio
async def test_zero_amount_blocks_mobile_money(make_flow, provider):
    flow = make_flow(0)
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    with pytest.raises(CheckoutValidationException) as exc:
        await flow.next()
    assert exc.value.field == "amount"
    assert flow.session.step == CheckoutStep.METHOD
    assert provider.initiated == []

    flow.select_method(PaymentMethod.CASH_ON_DELIVERY)
    assert await flow.next() == CheckoutStep.CONFIRMATION
