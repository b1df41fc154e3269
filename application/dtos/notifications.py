"""
Notification DTOs: the immutable "order placed" snapshot handed to every
channel and the per-channel outcome collected by the dispatcher.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer


class NotificationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    pressing_id: str
    pressing_name: str
    order_id: str
    customer_name: str
    customer_phone: str
    total_amount: int
    services_count: int
    order_reference: Optional[str] = None
    collection_datetime: Optional[str] = None
    delivery_address: Optional[str] = None


class NotificationResult(BaseModel):
    success: bool
    channel: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        ts = timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
