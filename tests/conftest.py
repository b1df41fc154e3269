"""Pytest bootstrap configuration and shared checkout stubs.

Stubs stand in for the payment provider, the Order API and notification
channels so flows run without network access.
"""
import asyncio
import os
from typing import Any, Optional

import pytest

# Keep settings deterministic regardless of the developer's .env
os.environ.setdefault("REDIS__URL", "")
os.environ.setdefault("CHECKOUT__DRAFT_STORE", "memory")

from application.dtos.checkout import StartCheckout  # noqa: E402
from application.dtos.notifications import NotificationRequest, NotificationResult  # noqa: E402
from application.dtos.orders import CreatedOrder  # noqa: E402
from application.dtos.payments import (  # noqa: E402
    PaymentInitiation,
    PaymentInitiationResult,
    TransactionStatus,
)
from application.services.checkout_service import PaymentFlowController  # noqa: E402
from application.services.notification_dispatcher import NotificationDispatcher  # noqa: E402
from domain.checkout.session import OrderDraft, OrderItem, PaymentSession  # noqa: E402
from infrastructure.checkout.draft_stores import InMemoryDraftStore  # noqa: E402
from infrastructure.checkout.navigator import RecordingNavigator  # noqa: E402


class StubProvider:
    provider = "stub"

    def __init__(self, result: Optional[PaymentInitiationResult] = None, statuses: Optional[list] = None):
        self.result = result or PaymentInitiationResult(status="succeeded", transaction_id="txn_1")
        # Each get_status call pops the next entry; the last one repeats
        self.statuses = list(statuses or ["succeeded"])
        self.initiated: list[PaymentInitiation] = []
        self.status_calls = 0
        self.error: Optional[Exception] = None
        self.delay = 0.0

    async def initiate(self, req: PaymentInitiation) -> PaymentInitiationResult:
        self.initiated.append(req)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def get_status(self, transaction_id: str) -> TransactionStatus:
        self.status_calls += 1
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(status, Exception):
            raise status
        return TransactionStatus(transaction_id=transaction_id, status=status, provider=self.provider)


class StubOrders:
    def __init__(self, order_id: str = "ord_1", reference: Optional[str] = None):
        self.order_id = order_id
        self.reference = reference
        self.created: list[dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.delay = 0.0

    async def create(self, order_draft: dict[str, Any]) -> CreatedOrder:
        self.created.append(order_draft)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return CreatedOrder(id=self.order_id, reference=self.reference)


class StubChannel:
    def __init__(self, name: str, *, fail: bool = False, hang: bool = False):
        self.name = name
        self.failure_message = f"{name} temporarily unavailable"
        self.fail = fail
        self.hang = hang
        self.sent: list[NotificationRequest] = []

    async def send(self, request: NotificationRequest) -> NotificationResult:
        self.sent.append(request)
        if self.hang:
            await asyncio.sleep(3600)
        if self.fail:
            raise RuntimeError(f"{self.name} down")
        return NotificationResult(success=True, channel=self.name, message=f"{self.name} sent")

    async def check(self) -> bool:
        if self.fail:
            raise RuntimeError(f"{self.name} down")
        return True


def make_draft(**overrides) -> OrderDraft:
    values = dict(
        pressing_id="p1",
        pressing_name="Pressing Cocody",
        customer_name="Awa Kone",
        customer_phone="0700000000",
        services=[OrderItem(service_id="s1", name="Shirt", quantity=2, unit_price=2000)],
        delivery_address="Cocody, Abidjan",
        requested_collection_at="2024-05-02T09:00:00Z",
    )
    values.update(overrides)
    return OrderDraft(**values)


def make_start(amount: int = 5000, **overrides) -> StartCheckout:
    values = dict(order=make_draft(), amount=amount, subtotal=amount, fees=0, discount=0)
    values.update(overrides)
    return StartCheckout(**values)


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def orders():
    return StubOrders()


@pytest.fixture
def channels():
    return [StubChannel("toast"), StubChannel("websocket"), StubChannel("email"), StubChannel("sms")]


@pytest.fixture
def dispatcher(channels):
    return NotificationDispatcher(channels, channel_timeout=1.0)


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def drafts():
    return InMemoryDraftStore()


@pytest.fixture
def make_flow(provider, orders, dispatcher, navigator, drafts):
    def _make(amount: int = 5000, *, max_retries: int = 3, screens=None, **session_kwargs):
        session = PaymentSession(draft=make_draft(), amount=amount, max_retries=max_retries, **session_kwargs)
        return PaymentFlowController(
            session,
            provider=provider,
            orders=orders,
            dispatcher=dispatcher,
            navigator=navigator,
            screens=screens,
            drafts=drafts,
        )

    return _make
