"""Notification channels (toast, websocket, email, sms)."""
from .channels import (
    EmailChannel,
    SmsChannel,
    ToastChannel,
    WebsocketChannel,
    build_channels,
    notification_api,
    pressing_room,
)

__all__ = [
    "EmailChannel",
    "SmsChannel",
    "ToastChannel",
    "WebsocketChannel",
    "build_channels",
    "notification_api",
    "pressing_room",
]
