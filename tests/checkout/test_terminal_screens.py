import asyncio

import pytest

from application.dtos.checkout import TerminalPayload
from application.dtos.payments import PaymentInitiationResult
from application.services.terminal_screens import TerminalScreen, TerminalScreenFactory
from domain.checkout.errors import ErrorKind
from domain.checkout.session import CheckoutStep, PaymentMethod, TerminalKind

from conftest import StubProvider


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        await asyncio.sleep(0)


async def _wait_for(predicate, timeout=1.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout=timeout)


async def _confirm_wallet(flow):
    flow.select_method(PaymentMethod.WALLET_TRANSFER)
    await flow.next()
    flow.select_operator("wave")
    await flow.next()
    flow.enter_phone_number("0512345678")
    await flow.next()
    return await flow.confirm()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def screens(provider, clock):
    return TerminalScreenFactory(provider, clock=clock, sleep=clock.sleep)


@pytest.mark.asyncio
async def test_success_screen_reroutes_to_failed(make_flow, provider, screens, navigator):
    provider.statuses = ["failed"]
    flow = make_flow(12000, screens=screens)
    assert await _confirm_wallet(flow) == TerminalKind.SUCCESS

    await _wait_for(lambda: flow.session.step == CheckoutStep.FAILED)

    assert navigator.terminals() == [TerminalKind.SUCCESS, TerminalKind.FAILED]
    payload = navigator.current.payload
    assert payload.error.kind == ErrorKind.TRANSACTION_DECLINED
    assert payload.verified_status == "failed"
    # The order exists, so this failure cannot be retried
    assert payload.can_retry is False
    assert flow.session.last_failure.kind == ErrorKind.TRANSACTION_DECLINED
    await flow.teardown()


@pytest.mark.asyncio
async def test_success_screen_confirms_in_place(make_flow, provider, screens, navigator):
    provider.statuses = ["succeeded"]
    flow = make_flow(12000, screens=screens)
    await _confirm_wallet(flow)

    await _wait_for(lambda: flow.screen is not None and flow.screen.verified)

    assert navigator.terminals() == [TerminalKind.SUCCESS]
    assert flow.view().terminal.verified_status == "succeeded"
    assert not flow.screen.polling


@pytest.mark.asyncio
async def test_failed_screen_recovers_to_success(make_flow, provider, orders, screens, navigator):
    provider.result = PaymentInitiationResult(status="failed", transaction_id="txn_7", error="network unreachable")
    provider.statuses = ["succeeded"]
    flow = make_flow(12000, screens=screens)
    assert await _confirm_wallet(flow) == TerminalKind.FAILED

    await _wait_for(lambda: flow.session.step == CheckoutStep.SUCCESS)

    assert navigator.terminals() == [TerminalKind.FAILED, TerminalKind.SUCCESS]
    assert navigator.current.payload.verified_status == "succeeded"
    assert navigator.current.payload.error is None
    # The order settlement skipped is created once the payment is confirmed
    assert flow.session.order_created is True
    assert navigator.current.payload.created_order_id == "ord_1"
    assert len(orders.created) == 1
    assert orders.created[0]["payment"]["status"] == "completed"


@pytest.mark.asyncio
async def test_pending_handover_then_timeout(make_flow, provider, screens, navigator, clock):
    provider.statuses = ["pending"]
    flow = make_flow(12000, screens=screens)
    await _confirm_wallet(flow)

    await _wait_for(lambda: navigator.terminals()[-1] == TerminalKind.FAILED, timeout=2.0)

    assert navigator.terminals() == [TerminalKind.SUCCESS, TerminalKind.PENDING, TerminalKind.FAILED]
    assert navigator.current.payload.error.kind == ErrorKind.TIMEOUT
    assert clock.now >= 300.0


@pytest.mark.asyncio
async def test_cash_on_delivery_does_not_poll(make_flow, provider, screens):
    flow = make_flow(5000, screens=screens)
    flow.select_method(PaymentMethod.CASH_ON_DELIVERY)
    await flow.next()
    await flow.confirm()
    assert flow.screen is not None
    assert not flow.screen.polling
    await asyncio.sleep(0)
    assert provider.status_calls == 0


@pytest.mark.asyncio
async def test_unmount_stops_route_changes():
    provider = StubProvider(statuses=["pending", "pending", "failed"])
    routed = []

    async def route(kind, payload):
        routed.append(kind)

    factory = TerminalScreenFactory(provider, intervals={TerminalKind.PENDING: 0.01})
    payload = TerminalPayload(session_id="s1", method=PaymentMethod.WALLET_TRANSFER, amount=1000, transaction_id="txn_1")
    screen = factory.build(TerminalKind.PENDING, payload, route)
    assert isinstance(screen, TerminalScreen)
    assert screen.mount()
    await screen.unmount()
    await asyncio.sleep(0.05)
    assert routed == []
    assert not screen.polling


@pytest.mark.asyncio
async def test_leaving_terminal_tears_down_poller(make_flow, provider, screens):
    provider.result = PaymentInitiationResult(status="failed", transaction_id="txn_7", error="declined")
    provider.statuses = ["pending"]
    flow = make_flow(12000, screens=screens)
    await _confirm_wallet(flow)
    screen = flow.screen

    await flow.retry()

    assert flow.screen is None
    assert not screen.polling


@pytest.mark.asyncio
async def test_order_failure_is_final_after_paid_transfer(make_flow, provider, orders, screens, navigator):
    provider.statuses = ["succeeded"]
    orders.error = RuntimeError("Order service unavailable")
    flow = make_flow(12000, screens=screens)
    assert await _confirm_wallet(flow) == TerminalKind.FAILED

    for _ in range(5):
        await asyncio.sleep(0)

    assert flow.session.step == CheckoutStep.FAILED
    assert flow.session.last_failure.kind == ErrorKind.ORDER_CREATION_FAILED
    assert not flow.screen.polling
    assert provider.status_calls == 0
    assert navigator.terminals() == [TerminalKind.FAILED]
    payload = navigator.current.payload
    assert payload.transaction_id == "txn_1"
    assert payload.verification_done is True
    assert len(orders.created) == 1


@pytest.mark.asyncio
async def test_verified_payment_never_reaches_success_without_order(make_flow, provider, orders, screens, navigator):
    provider.result = PaymentInitiationResult(status="pending", transaction_id="txn_9")
    provider.statuses = ["succeeded"]
    orders.error = RuntimeError("Order service unavailable")
    flow = make_flow(12000, screens=screens)
    assert await _confirm_wallet(flow) == TerminalKind.FAILED

    await _wait_for(lambda: flow.session.last_failure.kind == ErrorKind.ORDER_CREATION_FAILED)

    assert flow.session.step == CheckoutStep.FAILED
    assert navigator.terminals() == [TerminalKind.FAILED, TerminalKind.FAILED]
    assert not flow.screen.polling
    assert len(orders.created) == 1

    # A later success verdict keeps the failed screen and only records the status
    await flow._reroute(TerminalKind.SUCCESS, flow.screen.payload.model_copy(update={"verified_status": "succeeded"}))
    assert flow.session.step == CheckoutStep.FAILED
    assert flow.view().terminal.verified_status == "succeeded"
    assert len(orders.created) == 1
    await flow.teardown()
