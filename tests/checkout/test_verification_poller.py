import asyncio

import pytest

from application.services.verification_poller import TransactionVerificationPoller

from conftest import StubProvider


class FakeClock:
    """Virtual time: sleeping advances the clock instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def _poller(provider, clock, **kwargs):
    kwargs.setdefault("interval", 2.0)
    return TransactionVerificationPoller(provider, clock=clock, sleep=clock.sleep, **kwargs)


@pytest.mark.asyncio
async def test_stops_on_first_terminal_status():
    provider = StubProvider(statuses=["pending", "pending", "succeeded"])
    clock = FakeClock()
    result = await _poller(provider, clock).run("txn_1")
    assert result.outcome == "succeeded"
    assert result.calls == 3
    assert clock.sleeps == [2.0, 2.0]


@pytest.mark.asyncio
async def test_deadline_yields_timeout():
    provider = StubProvider(statuses=["pending"])
    clock = FakeClock()
    result = await _poller(provider, clock, interval=5.0, deadline=300.0).run("txn_1")
    assert result.outcome == "timeout"
    assert result.elapsed >= 300.0
    # One call at t=0, then one every 5s until the deadline
    assert result.calls == 61


@pytest.mark.asyncio
async def test_status_errors_keep_polling():
    provider = StubProvider(statuses=[RuntimeError("502"), "failed"])
    clock = FakeClock()
    result = await _poller(provider, clock).run("txn_1")
    assert result.outcome == "failed"
    assert result.calls == 2


@pytest.mark.asyncio
async def test_stop_on_pending_hands_over():
    provider = StubProvider(statuses=["pending"])
    clock = FakeClock()
    result = await _poller(provider, clock, stop_on_pending=True).run("txn_1")
    assert result.outcome == "pending"
    assert result.calls == 1


@pytest.mark.asyncio
async def test_stop_cancels_without_outcome():
    provider = StubProvider(statuses=["pending"])
    delivered = []

    async def on_outcome(result):
        delivered.append(result)

    poller = TransactionVerificationPoller(provider, interval=0.01, deadline=60)
    poller.start("txn_1", on_outcome)
    await asyncio.sleep(0.05)
    assert poller.active
    await poller.stop()
    assert not poller.active
    calls = provider.status_calls
    await asyncio.sleep(0.05)
    assert provider.status_calls == calls
    assert delivered == []


@pytest.mark.asyncio
async def test_start_delivers_outcome():
    provider = StubProvider(statuses=["canceled"])
    done = asyncio.Event()
    seen = []

    async def on_outcome(result):
        seen.append(result.outcome)
        done.set()

    clock = FakeClock()
    poller = _poller(provider, clock)
    poller.start("txn_1", on_outcome)
    await asyncio.wait_for(done.wait(), timeout=1)
    assert seen == ["canceled"]
    with pytest.raises(ValueError):
        TransactionVerificationPoller(provider, interval=0)


@pytest.mark.asyncio
async def test_cannot_start_twice():
    provider = StubProvider(statuses=["pending"])

    async def on_outcome(result):
        pass

    poller = TransactionVerificationPoller(provider, interval=0.01)
    poller.start("txn_1", on_outcome)
    with pytest.raises(RuntimeError):
        poller.start("txn_1", on_outcome)
    await poller.stop()
