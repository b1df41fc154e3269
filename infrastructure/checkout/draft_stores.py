"""
Draft store adapters: the pending checkout kept for one hour so a customer
coming back to the payment page can resume it.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from pydantic import ValidationError

from application.dtos.checkout import StartCheckout
from core.logging_config import get_logger
from infrastructure.external.cache import RedisClient


logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600


class InMemoryDraftStore:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._drafts: dict[str, tuple[float, dict]] = {}

    async def save(self, session_id: str, draft: StartCheckout) -> None:
        self._drafts[session_id] = (self._clock() + self._ttl, draft.model_dump(mode="json"))

    async def restore(self, session_id: str) -> Optional[StartCheckout]:
        entry = self._drafts.get(session_id)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            del self._drafts[session_id]
            logger.info("checkout_draft_expired", session_id=session_id)
            return None
        return StartCheckout.model_validate(payload)

    async def discard(self, session_id: str) -> None:
        self._drafts.pop(session_id, None)


class RedisDraftStore:
    """Drafts as JSON under `checkout:draft:<session_id>` with SET ... EX."""

    KEY_PREFIX = "checkout:draft:"

    def __init__(self, client: RedisClient, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._client = client
        self._ttl = ttl_seconds

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def save(self, session_id: str, draft: StartCheckout) -> None:
        ok = await self._client.set(self._key(session_id), draft.model_dump(mode="json"), ttl=self._ttl)
        if not ok:
            logger.warning("checkout_draft_save_failed", session_id=session_id)

    async def restore(self, session_id: str) -> Optional[StartCheckout]:
        payload = await self._client.get(self._key(session_id))
        if not isinstance(payload, dict):
            return None
        try:
            return StartCheckout.model_validate(payload)
        except ValidationError as exc:
            logger.warning("checkout_draft_corrupt", session_id=session_id, error=str(exc))
            await self.discard(session_id)
            return None

    async def discard(self, session_id: str) -> None:
        await self._client.delete(self._key(session_id))
