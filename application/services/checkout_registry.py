"""
In-process registry of live checkout flows, keyed by session id.

Owns the lifecycle around the flow controller: creating a session from a
start command (saving its draft), restoring one from a saved draft, and
tearing flows down so no verification poller outlives its session.

A flow leaves the registry once it reaches the success terminal with nothing
left to verify, or after it has been idle for the draft TTL. Settled session
ids are remembered for the same TTL so a late confirm is still answered as
already settled.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from application.dtos.checkout import StartCheckout
from application.ports.draft_store import DraftStore
from application.ports.navigator import Navigator
from application.ports.order_api import OrderApi
from application.ports.payment_provider import PaymentProvider
from application.services.checkout_service import PaymentFlowController
from application.services.notification_dispatcher import NotificationDispatcher
from application.services.terminal_screens import TerminalScreenFactory
from core.logging_config import get_logger
from domain.checkout.session import PaymentSession
from domain.common.exceptions import CheckoutNotFoundException, SettlementInProgressException


logger = get_logger(__name__)


class CheckoutRegistry:
    def __init__(
        self,
        *,
        provider: PaymentProvider,
        orders: OrderApi,
        dispatcher: NotificationDispatcher,
        navigator_factory: Callable[[], Navigator],
        drafts: DraftStore,
        screens: Optional[TerminalScreenFactory] = None,
        max_retries: int = 3,
        currency: str = "XOF",
        idle_ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._orders = orders
        self._dispatcher = dispatcher
        self._navigator_factory = navigator_factory
        self._drafts = drafts
        self._screens = screens
        self._max_retries = max_retries
        self._currency = currency
        self._idle_ttl = idle_ttl_seconds
        self._clock = clock
        self._flows: dict[str, PaymentFlowController] = {}
        self._last_seen: dict[str, float] = {}
        # session_id -> (settled_at, created_order_id)
        self._settled: dict[str, tuple[float, Optional[str]]] = {}

    def __len__(self) -> int:
        return len(self._flows)

    async def start(self, command: StartCheckout, *, session_id: Optional[str] = None) -> PaymentFlowController:
        max_retries = command.max_retries if command.max_retries is not None else self._max_retries
        await self.sweep()
        kwargs = {"session_id": session_id} if session_id else {}
        session = PaymentSession(
            draft=command.order,
            amount=command.amount,
            subtotal=command.subtotal,
            fees=command.fees,
            discount=command.discount,
            max_retries=max_retries,
            order_reference=command.order_reference,
            **kwargs,
        )
        flow = PaymentFlowController(
            session,
            provider=self._provider,
            orders=self._orders,
            dispatcher=self._dispatcher,
            navigator=self._navigator_factory(),
            screens=self._screens,
            drafts=self._drafts,
            currency=self._currency,
            on_finished=self._release,
        )
        self._flows[session.session_id] = flow
        self._last_seen[session.session_id] = self._clock()
        await self._drafts.save(session.session_id, command)
        logger.info(
            "checkout_started",
            session_id=session.session_id,
            pressing_id=command.order.pressing_id,
            amount=command.amount,
        )
        return flow

    async def restore(self, session_id: str) -> PaymentFlowController:
        """Return the live flow, or rebuild one from its saved draft."""
        await self.sweep()
        if session_id in self._flows or session_id in self._settled:
            return self.get(session_id)
        command = await self._drafts.restore(session_id)
        if command is None:
            raise CheckoutNotFoundException(session_id)
        logger.info("checkout_restored", session_id=session_id)
        return await self.start(command, session_id=session_id)

    def get(self, session_id: str) -> PaymentFlowController:
        flow = self._flows.get(session_id)
        if flow is None:
            settled = self._settled.get(session_id)
            if settled is not None:
                raise SettlementInProgressException(order_created=True, created_order_id=settled[1])
            raise CheckoutNotFoundException(session_id)
        self._last_seen[session_id] = self._clock()
        return flow

    async def discard(self, session_id: str) -> None:
        self._last_seen.pop(session_id, None)
        flow = self._flows.pop(session_id, None)
        if flow is not None:
            await flow.teardown()

    async def sweep(self) -> int:
        """Drop flows idle for longer than the TTL; returns how many were dropped."""
        now = self._clock()
        for session_id, (settled_at, _) in list(self._settled.items()):
            if now - settled_at >= self._idle_ttl:
                del self._settled[session_id]
        expired = 0
        for session_id, seen in list(self._last_seen.items()):
            flow = self._flows.get(session_id)
            if now - seen < self._idle_ttl or (flow is not None and flow.session.settling):
                continue
            logger.info("checkout_expired", session_id=session_id, idle_seconds=round(now - seen))
            await self.discard(session_id)
            expired += 1
        return expired

    async def _release(self, flow: PaymentFlowController) -> None:
        session = flow.session
        if self._flows.get(session.session_id) is not flow:
            return
        self._settled[session.session_id] = (self._clock(), session.created_order_id)
        await self.discard(session.session_id)
        logger.info("checkout_released", session_id=session.session_id, live=len(self._flows))

    async def aclose(self) -> None:
        for session_id in list(self._flows):
            await self.discard(session_id)
