"""
Notification channels for "new order" events sent to a pressing.

Each channel hands one payload to its transport and reports a
NotificationResult. Channels raise on transport failure; the dispatcher turns
that into a failed result using the channel's `failure_message`.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from application.dtos.notifications import NotificationRequest, NotificationResult
from application.ports.realtime import Envelope, RealtimeBrokerPort
from core.logging_config import get_logger
from core.settings import NotificationSettings
from infrastructure.external.api_clients.base import BaseAPIClient


logger = get_logger(__name__)

NEW_ORDER_EVENT = "new_order"


def pressing_room(pressing_id: str) -> str:
    return f"pressing_{pressing_id}"


class ToastChannel:
    """Immediate local acknowledgement; cannot fail."""

    name = "toast"
    failure_message = "Toast unavailable"

    async def send(self, request: NotificationRequest) -> NotificationResult:
        return NotificationResult(
            success=True,
            channel=self.name,
            message=f"New order from {request.customer_name} ({request.total_amount} FCFA)",
        )

    async def check(self) -> bool:
        return True


class WebsocketChannel:
    name = "websocket"
    failure_message = "WebSocket unavailable"

    def __init__(self, broker: RealtimeBrokerPort) -> None:
        self._broker = broker

    async def send(self, request: NotificationRequest) -> NotificationResult:
        envelope = Envelope(
            type=NEW_ORDER_EVENT,
            room=pressing_room(request.pressing_id),
            data={
                "order_id": request.order_id,
                "order_reference": request.order_reference,
                "customer_name": request.customer_name,
                "total_amount": request.total_amount,
                "services_count": request.services_count,
            },
        )
        await self._broker.publish(envelope.room, envelope)
        return NotificationResult(success=True, channel=self.name, message="WebSocket notification sent")

    async def check(self) -> bool:
        return self._broker is not None


class _HttpNotificationChannel:
    """Channels that POST to the notification API (`notifications/<name>`)."""

    name = "http"
    failure_message = "Notification service temporarily unavailable"
    success_message = "Notification sent"

    def __init__(self, api: BaseAPIClient) -> None:
        self._api = api

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        raise NotImplementedError

    async def send(self, request: NotificationRequest) -> NotificationResult:
        await self._api.request("POST", f"notifications/{self.name}", json=self.build_payload(request))
        return NotificationResult(success=True, channel=self.name, message=self.success_message)

    async def check(self) -> bool:
        await self._api.request("GET", "notifications/health")
        return True


class EmailChannel(_HttpNotificationChannel):
    name = "email"
    failure_message = "Email service temporarily unavailable"
    success_message = "Notification email sent"

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        return {
            "pressing_id": request.pressing_id,
            "subject": f"New order #{request.order_reference}",
            "template": NEW_ORDER_EVENT,
            "data": request.model_dump(mode="json"),
        }


class SmsChannel(_HttpNotificationChannel):
    name = "sms"
    failure_message = "SMS service temporarily unavailable"
    success_message = "Notification SMS sent"

    def build_payload(self, request: NotificationRequest) -> dict[str, Any]:
        return {
            "pressing_id": request.pressing_id,
            "message": (
                f"New order: {request.customer_name} - {request.total_amount} FCFA. "
                "Check your dashboard."
            ),
            "data": {
                "order_id": request.order_id,
                "customer_name": request.customer_name,
                "total_amount": request.total_amount,
            },
        }


def build_channels(
    cfg: NotificationSettings,
    *,
    broker: Optional[RealtimeBrokerPort] = None,
    api: Optional[BaseAPIClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list:
    """Instantiate the enabled channels, in configured order."""
    api = api or notification_api(cfg, transport=transport)
    factories = {
        "toast": ToastChannel,
        "websocket": (lambda: WebsocketChannel(broker)) if broker is not None else None,
        "email": lambda: EmailChannel(api),
        "sms": lambda: SmsChannel(api),
    }
    channels = []
    for name in cfg.channels:
        factory = factories.get(name)
        if factory is None:
            logger.warning("notification_channel_unavailable", channel=name)
            continue
        channels.append(factory())
    return channels


def notification_api(cfg: NotificationSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> BaseAPIClient:
    # Notifications are best-effort: no retries
    return BaseAPIClient(
        cfg.base_url,
        api_key=cfg.api_key,
        timeouts=cfg.timeouts.model_dump(),
        retry={"max": 0, "base": 0.2},
        transport=transport,
    )
