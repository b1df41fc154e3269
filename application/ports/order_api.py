"""Order API port: persistence of orders is delegated to an external service."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from application.dtos.orders import CreatedOrder


@runtime_checkable
class OrderApi(Protocol):
    """Creates an order from a full draft.

    Implementations raise `OrderCreationError` on validation or server failure.
    """

    async def create(self, order_draft: dict[str, Any]) -> CreatedOrder: ...
