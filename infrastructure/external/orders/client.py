"""
HTTP adapter for the external Order API (`POST orders`).

Order creation is not idempotent on the server side, so only requests that
never reached the server (connection refused) are retried.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from application.dtos.orders import CreatedOrder
from core.logging_config import get_logger
from core.settings import OrderApiSettings
from domain.common.exceptions import BusinessException
from infrastructure.external.api_clients.base import APIError, BaseAPIClient
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)


class OrderCreationError(BusinessException):
    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[dict] = None):
        self.status_code = status_code
        super().__init__(
            code=PaymentCode.ORDER_CREATION_FAILED,
            message=message,
            error_type="OrderCreationError",
            details={"status_code": status_code, **(details or {})},
            message_key="order.creation_failed",
        )


class HttpOrderApi(BaseAPIClient):
    @classmethod
    def from_settings(
        cls,
        cfg: OrderApiSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpOrderApi":
        return cls(
            cfg.base_url,
            api_key=cfg.api_key,
            timeouts=cfg.timeouts.model_dump(),
            retry={"max": cfg.retry.max, "base": cfg.retry.base_backoff},
            transport=transport,
        )

    async def create(self, order_draft: dict[str, Any]) -> CreatedOrder:
        try:
            data = await self.request("POST", "orders", json=order_draft, retry_on=(httpx.ConnectError,))
        except APIError as exc:
            raise OrderCreationError(exc.message, status_code=exc.status_code, details={"payload": exc.payload}) from exc
        except httpx.TimeoutException as exc:
            raise OrderCreationError("Order API request timed out") from exc
        except httpx.HTTPError as exc:
            raise OrderCreationError(f"Network connection error while creating the order: {exc}") from exc

        if not isinstance(data, dict):
            raise OrderCreationError("Order API returned an empty response")
        try:
            created = CreatedOrder.model_validate(data)
        except ValidationError as exc:
            raise OrderCreationError("Order API response has no order id") from exc
        logger.info("order_api_created", order_id=created.id, reference=created.reference)
        return created
