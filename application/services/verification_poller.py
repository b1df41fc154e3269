"""
Transaction verification poller.

Repeatedly asks the payment provider for the authoritative status of one
transaction until a terminal status is observed or the deadline elapses.
Shared by the pending/success/failed terminal screens, which differ only in
interval and in what they do with the result.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from application.dtos.payments import PollResult
from application.ports.payment_provider import PaymentProvider
from core.logging_config import get_logger


logger = get_logger(__name__)

TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})

OutcomeHandler = Callable[[PollResult], Awaitable[None]]


class TransactionVerificationPoller:
    def __init__(
        self,
        provider: PaymentProvider,
        *,
        interval: float,
        deadline: float = 300.0,
        stop_on_pending: bool = False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._provider = provider
        self.interval = interval
        self.deadline = deadline
        # Hosts that are not the pending screen hand a pending transaction over to it
        self.stop_on_pending = stop_on_pending
        self._clock = clock
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, transaction_id: str) -> PollResult:
        start = self._clock()
        calls = 0
        while True:
            calls += 1
            observed = await self._observe(transaction_id)
            elapsed = self._clock() - start
            logger.debug(
                "verification_poll",
                transaction_id=transaction_id,
                status=observed,
                calls=calls,
                elapsed=round(elapsed, 3),
            )
            if observed in TERMINAL_STATUSES or (observed == "pending" and self.stop_on_pending):
                return PollResult(transaction_id=transaction_id, outcome=observed, calls=calls, elapsed=elapsed)
            if elapsed >= self.deadline:
                logger.warning("verification_deadline_exceeded", transaction_id=transaction_id, calls=calls)
                return PollResult(transaction_id=transaction_id, outcome="timeout", calls=calls, elapsed=elapsed)
            await self._sleep(self.interval)

    async def _observe(self, transaction_id: str) -> Optional[str]:
        try:
            status = await self._provider.get_status(transaction_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Unknown is not terminal: keep polling until the deadline decides
            logger.warning("verification_status_failed", transaction_id=transaction_id, error=str(exc))
            return None
        return status.status

    def start(self, transaction_id: str, on_outcome: OutcomeHandler) -> asyncio.Task:
        if self.active:
            raise RuntimeError("poller already running")
        self._stopped = False

        async def _loop() -> None:
            result = await self.run(transaction_id)
            if self._stopped:
                return
            try:
                await on_outcome(result)
            except Exception as exc:
                logger.error(
                    "verification_outcome_handler_failed",
                    transaction_id=transaction_id,
                    outcome=result.outcome,
                    error=str(exc),
                    exc_info=True,
                )

        self._task = asyncio.get_running_loop().create_task(_loop())
        return self._task

    async def stop(self) -> None:
        """Cancel polling; no outcome is delivered after this returns."""
        self._stopped = True
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Called from the outcome handler itself; the loop is already finishing
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
