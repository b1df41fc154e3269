"""
Realtime port and message envelope (contracts-first).

The websocket notification channel publishes through RealtimeBrokerPort so
the application layer stays decoupled from the concrete broadcast transport
(in-memory for a single process, Redis pub/sub across processes).
"""
from __future__ import annotations

from typing import Any, Protocol
from pydantic import BaseModel, Field
from datetime import datetime, timezone


def _utc_now_z() -> str:
    ts = datetime.now(timezone.utc)
    s = ts.isoformat()
    return s.replace("+00:00", "Z")


class Envelope(BaseModel):
    """Message pushed to subscribers of a room.

    Fields:
      - type: semantic event type (new_order, ...)
      - room: channel the event is addressed to, e.g. `pressing_<id>`
      - data: payload (JSON-serializable)
      - ts: server-generated UTC timestamp (ISO8601 with Z)
    """

    type: str
    room: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    ts: str = Field(default_factory=_utc_now_z)


class RealtimeBrokerPort(Protocol):
    async def publish(self, room: str, envelope: Envelope) -> None: ...

    async def aclose(self) -> None: ...


__all__ = ["Envelope", "RealtimeBrokerPort"]
