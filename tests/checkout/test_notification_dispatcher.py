import asyncio

import pytest

from application.dtos.notifications import NotificationRequest
from application.services.notification_dispatcher import NotificationDispatcher, notification_request_for
from domain.checkout.session import PaymentSession

from conftest import StubChannel, make_draft


def _request() -> NotificationRequest:
    return NotificationRequest(
        pressing_id="p1",
        pressing_name="Pressing Cocody",
        order_id="ord_1",
        customer_name="Awa Kone",
        customer_phone="0700000000",
        total_amount=5000,
        services_count=1,
        order_reference="GEO-123456",
    )


@pytest.mark.asyncio
async def test_all_channels_report():
    channels = [StubChannel("toast"), StubChannel("websocket"), StubChannel("email"), StubChannel("sms")]
    results = await NotificationDispatcher(channels).dispatch(_request())
    assert [r.channel for r in results] == ["toast", "websocket", "email", "sms"]
    assert all(r.success for r in results)


@pytest.mark.asyncio
async def test_failure_is_isolated_per_channel():
    channels = [StubChannel("toast"), StubChannel("email", fail=True), StubChannel("sms")]
    results = await NotificationDispatcher(channels).dispatch(_request())
    by_name = {r.channel: r for r in results}
    assert by_name["toast"].success and by_name["sms"].success
    assert not by_name["email"].success
    assert by_name["email"].message == "email temporarily unavailable"
    assert len(channels[2].sent) == 1


@pytest.mark.asyncio
async def test_total_failure_still_returns_results():
    channels = [StubChannel("email", fail=True), StubChannel("sms", fail=True)]
    results = await NotificationDispatcher(channels).dispatch(_request())
    assert [r.success for r in results] == [False, False]


@pytest.mark.asyncio
async def test_hanging_channel_times_out():
    channels = [StubChannel("toast"), StubChannel("sms", hang=True)]
    dispatcher = NotificationDispatcher(channels, channel_timeout=0.05)
    results = await asyncio.wait_for(dispatcher.dispatch(_request()), timeout=1)
    assert results[0].success
    assert not results[1].success
    assert "timed out" in results[1].message


@pytest.mark.asyncio
async def test_channels_run_concurrently():
    started = []

    class SlowChannel(StubChannel):
        async def send(self, request):
            started.append(self.name)
            await asyncio.sleep(0.05)
            return await super().send(request)

    channels = [SlowChannel("a"), SlowChannel("b"), SlowChannel("c")]
    loop = asyncio.get_running_loop()
    t0 = loop.time()
    await NotificationDispatcher(channels).dispatch(_request())
    assert loop.time() - t0 < 0.14
    assert sorted(started) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_check_channels():
    channels = [StubChannel("toast"), StubChannel("email", fail=True)]
    status = await NotificationDispatcher(channels).check_channels()
    assert status == {"toast": True, "email": False}


def test_request_built_from_session():
    session = PaymentSession(draft=make_draft(), amount=4500, order_reference="GEO-000001")
    request = notification_request_for(session, order_id="ord_9")
    assert request.order_reference == "GEO-000001"
    assert request.total_amount == 4500
    assert request.services_count == 1
    assert request.delivery_address == "Cocody, Abidjan"
    assert request.collection_datetime == "2024-05-02T09:00:00Z"
