"""Notification channel port. Each channel is independently pluggable."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.notifications import NotificationRequest, NotificationResult


@runtime_checkable
class NotificationChannel(Protocol):
    name: str

    async def send(self, request: NotificationRequest) -> NotificationResult: ...

    # Optional health probe; channels without one are reported unavailable.
    async def check(self) -> bool: ...  # pragma: no cover - optional
