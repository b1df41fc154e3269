"""
Terminal screens hosting the verification poller.

A screen is mounted when the flow lands on success/pending/failed and
unmounted when the flow leaves it. While mounted it reconciles the locally
assumed outcome with the provider's authoritative status and re-routes
through the flow when they diverge.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Mapping, Optional

from application.dtos.checkout import ErrorView, TerminalPayload
from application.dtos.payments import PollResult
from application.ports.payment_provider import PaymentProvider
from application.services.verification_poller import TransactionVerificationPoller
from core.logging_config import get_logger
from domain.checkout.errors import ErrorKind
from domain.checkout.session import PaymentMethod, TerminalKind


logger = get_logger(__name__)

RouteHandler = Callable[[TerminalKind, TerminalPayload], Awaitable[None]]
VerifiedHandler = Callable[["TerminalScreen"], Awaitable[None]]

DEFAULT_INTERVALS: dict[TerminalKind, float] = {
    TerminalKind.PENDING: 2.0,
    TerminalKind.SUCCESS: 3.0,
    TerminalKind.FAILED: 5.0,
}

_FAILURES: dict[str, tuple[ErrorKind, str]] = {
    "failed": (ErrorKind.TRANSACTION_DECLINED, "Transaction declined by the mobile money operator"),
    "canceled": (ErrorKind.TRANSACTION_DECLINED, "Payment was declined or canceled"),
    "timeout": (ErrorKind.TIMEOUT, "The transaction expired: processing deadline exceeded"),
}


class TerminalScreen:
    def __init__(
        self,
        kind: TerminalKind,
        payload: TerminalPayload,
        *,
        poller: Optional[TransactionVerificationPoller],
        route: RouteHandler,
        on_verified: Optional[VerifiedHandler] = None,
    ) -> None:
        self.kind = kind
        self.payload = payload
        self.verified = False
        self._poller = poller
        self._route = route
        self._on_verified = on_verified
        self._mounted = False

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.active

    def mount(self) -> bool:
        """Start verification; returns False when the poller is not engaged."""
        self._mounted = True
        if (
            self._poller is None
            or self.payload.method == PaymentMethod.CASH_ON_DELIVERY
            or not self.payload.transaction_id
            or self.payload.verification_done
        ):
            logger.info("verification_not_engaged", screen=self.kind.value, session_id=self.payload.session_id)
            return False
        self._poller.start(self.payload.transaction_id, self._reconcile)
        logger.info(
            "verification_started",
            screen=self.kind.value,
            transaction_id=self.payload.transaction_id,
            interval=self._poller.interval,
        )
        return True

    async def unmount(self) -> None:
        self._mounted = False
        if self._poller is not None:
            await self._poller.stop()

    async def _reconcile(self, result: PollResult) -> None:
        if not self._mounted:
            return
        outcome = result.outcome
        logger.info(
            "verification_outcome",
            screen=self.kind.value,
            transaction_id=result.transaction_id,
            outcome=outcome,
            calls=result.calls,
        )
        if outcome == "succeeded":
            await self._settle_on(
                TerminalKind.SUCCESS,
                verified_status="succeeded",
                error=None,
                verification_done=True,
            )
        elif outcome == "pending":
            await self._settle_on(TerminalKind.PENDING, verified_status="pending")
        else:
            kind, raw = _FAILURES[outcome]
            await self._settle_on(
                TerminalKind.FAILED,
                verified_status="pending" if outcome == "timeout" else outcome,
                error=ErrorView.for_kind(kind, raw),
                verification_done=True,
            )

    async def _settle_on(self, target: TerminalKind, **update) -> None:
        if target == self.kind:
            # Already on the right screen: confirm locally, no route change
            self.payload = self.payload.model_copy(
                update={"verified_status": update["verified_status"], "verification_done": True}
            )
            self.verified = True
            if self._on_verified is not None:
                await self._on_verified(self)
            return
        payload = self.payload.model_copy(update=update)
        await self._route(target, payload)


class TerminalScreenFactory:
    """Builds terminal screens sharing one poller implementation."""

    def __init__(
        self,
        provider: PaymentProvider,
        *,
        intervals: Optional[Mapping[TerminalKind, float]] = None,
        deadline: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._intervals = {**DEFAULT_INTERVALS, **(intervals or {})}
        self._deadline = deadline
        self._clock = clock
        self._sleep = sleep

    def build(
        self,
        kind: TerminalKind,
        payload: TerminalPayload,
        route: RouteHandler,
        *,
        on_verified: Optional[VerifiedHandler] = None,
    ) -> TerminalScreen:
        poller = TransactionVerificationPoller(
            self._provider,
            interval=self._intervals[kind],
            deadline=self._deadline,
            stop_on_pending=kind != TerminalKind.PENDING,
            clock=self._clock,
            sleep=self._sleep,
        )
        return TerminalScreen(kind, payload, poller=poller, route=route, on_verified=on_verified)
