"""Redis Pub/Sub based RealtimeBrokerPort implementation.

Reuses the shared RedisClient from infrastructure.external.cache. Publishes
to per-room channels `rt:room:{room}`; pressing dashboards connected to any
gateway worker pattern-subscribe `rt:room:*`.
"""
from __future__ import annotations

from typing import Optional

from application.ports.realtime import Envelope, RealtimeBrokerPort
from core.logging_config import get_logger
from infrastructure.external.cache import get_redis_client, RedisClient


logger = get_logger(__name__)


class RedisRealtimeBroker(RealtimeBrokerPort):
    def __init__(self, client: Optional[RedisClient] = None) -> None:
        self._client = client

    @staticmethod
    def _room_channel(room: str) -> str:
        return f"rt:room:{room}"

    async def _ensure_client(self) -> RedisClient:
        if self._client is None:
            self._client = await get_redis_client()
        return self._client

    async def publish(self, room: str, envelope: Envelope) -> None:  # type: ignore[override]
        client = await self._ensure_client()
        channel = self._room_channel(room)
        receivers = await client.publish(channel, envelope.model_dump(mode="json"))
        logger.debug("redis_realtime_published", channel=channel, receivers=receivers)

    async def aclose(self) -> None:  # type: ignore[override]
        # The shared client is closed by the application lifespan
        self._client = None
