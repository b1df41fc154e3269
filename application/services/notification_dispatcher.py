"""
Notification fan-out for "order placed" events.

Every configured channel runs concurrently and independently. A channel that
raises or hangs past its timeout produces a failed NotificationResult; the
dispatcher itself never raises and always returns one result per channel.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from application.dtos.notifications import NotificationRequest, NotificationResult
from application.ports.notifications import NotificationChannel
from core.logging_config import get_logger
from domain.checkout.session import PaymentSession


logger = get_logger(__name__)


def notification_request_for(
    session: PaymentSession,
    *,
    order_id: str,
    order_reference: Optional[str] = None,
) -> NotificationRequest:
    draft = session.draft
    return NotificationRequest(
        pressing_id=draft.pressing_id,
        pressing_name=draft.pressing_name,
        order_id=order_id,
        customer_name=draft.customer_name,
        customer_phone=draft.customer_phone,
        total_amount=session.amount,
        services_count=len(draft.services),
        order_reference=order_reference or session.order_reference or order_id,
        collection_datetime=draft.requested_collection_at,
        delivery_address=draft.delivery_address or None,
    )


class NotificationDispatcher:
    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        *,
        channel_timeout: Optional[float] = None,
    ) -> None:
        self._channels = list(channels)
        self._timeout = channel_timeout

    @property
    def channels(self) -> list[str]:
        return [c.name for c in self._channels]

    async def dispatch(self, request: NotificationRequest) -> list[NotificationResult]:
        logger.info(
            "notification_dispatch_started",
            pressing_id=request.pressing_id,
            order_id=request.order_id,
            channels=self.channels,
        )
        results = await asyncio.gather(*(self._run(channel, request) for channel in self._channels))
        failed = [r.channel for r in results if not r.success]
        logger.info(
            "notification_dispatch_finished",
            order_id=request.order_id,
            delivered=[r.channel for r in results if r.success],
            failed=failed,
        )
        return list(results)

    async def _run(self, channel: NotificationChannel, request: NotificationRequest) -> NotificationResult:
        name = getattr(channel, "name", type(channel).__name__)
        try:
            if self._timeout:
                result = await asyncio.wait_for(channel.send(request), timeout=self._timeout)
            else:
                result = await channel.send(request)
        except asyncio.TimeoutError:
            logger.warning("notification_channel_timeout", channel=name, timeout=self._timeout)
            return NotificationResult(success=False, channel=name, message=f"{name} timed out")
        except Exception as exc:
            logger.warning("notification_channel_failed", channel=name, error=str(exc))
            fallback = getattr(channel, "failure_message", None) or f"{name} unavailable"
            return NotificationResult(success=False, channel=name, message=fallback)
        return result

    async def check_channels(self) -> dict[str, bool]:
        """Best-effort availability probe per channel."""
        status: dict[str, bool] = {}
        for channel in self._channels:
            probe = getattr(channel, "check", None)
            if not callable(probe):
                status[channel.name] = False
                continue
            try:
                status[channel.name] = bool(await probe())
            except Exception as exc:
                logger.warning("notification_channel_check_failed", channel=channel.name, error=str(exc))
                status[channel.name] = False
        return status
