"""
Base payment client implementing shared concerns: http, retry, logging, mapping.

Concrete providers should subclass and implement provider-specific logic.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from application.dtos.payments import PaymentInitiation, PaymentInitiationResult, TransactionStatus
from core.logging_config import get_logger
from infrastructure.external.api_clients.base import APIError, BaseAPIClient
from infrastructure.external.payments.exceptions import (
    PaymentProviderError,
    PaymentRecoverableError,
    PaymentTimeoutError,
)
from shared.codes.payment_codes import INTERNAL_STATUSES, PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)


class BasePaymentClient(BaseAPIClient):
    provider: str = "base"

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url, api_key=api_key, timeouts=timeouts, retry=retry, transport=transport)

    # Default implementations raise to force override where needed
    async def initiate(self, req: PaymentInitiation) -> PaymentInitiationResult:
        raise NotImplementedError

    async def get_status(self, transaction_id: str) -> TransactionStatus:
        raise NotImplementedError

    # Helpers
    def _map_status(self, provider_status: Optional[str]) -> str:
        """Provider vocabulary → pending | succeeded | failed | canceled; unknown stays pending."""
        raw = (provider_status or "").lower()
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {})
        status = mapping.get(raw, raw)
        if status not in INTERNAL_STATUSES:
            logger.warning("payment_status_unmapped", provider=self.provider, provider_status=provider_status)
            return "pending"
        return status

    def _translate_error(self, exc: Exception, *, action: str) -> Exception:
        """Map transport/API failures onto the payment exception family."""
        if isinstance(exc, httpx.TimeoutException):
            return PaymentTimeoutError(f"Payment provider {action} timed out", provider=self.provider)
        if isinstance(exc, httpx.TransportError):
            return PaymentRecoverableError(
                f"Network connection error during payment {action}: {exc}",
                provider=self.provider,
            )
        if isinstance(exc, APIError):
            return PaymentProviderError(
                exc.message,
                provider=self.provider,
                status_code=exc.status_code,
                details={"action": action},
            )
        return PaymentProviderError(str(exc), provider=self.provider, details={"action": action})

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
