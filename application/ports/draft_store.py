"""Draft store port: explicit save/restore of an in-progress checkout."""
from __future__ import annotations

from typing import Optional, Protocol

from application.dtos.checkout import StartCheckout


class DraftStore(Protocol):
    async def save(self, session_id: str, draft: StartCheckout) -> None: ...

    async def restore(self, session_id: str) -> Optional[StartCheckout]:
        """Return the saved draft, or None when unknown or expired."""
        ...

    async def discard(self, session_id: str) -> None: ...
