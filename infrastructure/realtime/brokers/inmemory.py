"""In-memory implementation of RealtimeBrokerPort.

Single-process only. Useful for local dev and tests; keeps the last
published envelopes per room so tests and the API can inspect them.
"""
from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import Deque

from application.ports.realtime import Envelope, RealtimeBrokerPort
from core.logging_config import get_logger


logger = get_logger(__name__)


class InMemoryRealtimeBroker(RealtimeBrokerPort):
    def __init__(self, history: int = 50) -> None:
        self._lock = asyncio.Lock()
        self._history: dict[str, Deque[Envelope]] = defaultdict(lambda: deque(maxlen=history))

    async def publish(self, room: str, envelope: Envelope) -> None:  # type: ignore[override]
        async with self._lock:
            self._history[room].append(envelope)
        logger.debug("realtime_published", room=room, type=envelope.type)

    def published(self, room: str) -> list[Envelope]:
        return list(self._history.get(room, ()))

    async def aclose(self) -> None:  # type: ignore[override]
        async with self._lock:
            self._history.clear()
