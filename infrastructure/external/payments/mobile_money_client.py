"""
Mobile money adapter speaking the payments backend REST contract.

- POST payments/initiate      → {success, data: {transactionId, status, message}}
- GET  payments/{id}/status   → {success, data: {transactionId, status}}

Initiation is only retried when the connection could not be opened (the
request never left); a timed-out or 5xx initiation may have been processed
and is reported instead of re-sent.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from application.dtos.payments import PaymentInitiation, PaymentInitiationResult, TransactionStatus
from core.settings import ProviderSettings
from infrastructure.external.api_clients.base import APIError, RetryableAPIError
from infrastructure.external.payments.base import BasePaymentClient


class MobileMoneyClient(BasePaymentClient):
    provider = "mobile_money"

    @classmethod
    def from_settings(
        cls,
        cfg: ProviderSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "MobileMoneyClient":
        return cls(
            cfg.base_url,
            api_key=cfg.api_key,
            timeouts=cfg.timeouts.model_dump(),
            retry={"max": cfg.retry.max, "base": cfg.retry.base_backoff},
            transport=transport,
        )

    async def initiate(self, req: PaymentInitiation) -> PaymentInitiationResult:
        body = {
            "provider": req.operator_id,
            "providerName": req.operator_name,
            "phoneNumber": req.phone_number,
            "amount": req.amount,
            "currency": req.currency,
            "orderReference": req.order_reference,
            "metadata": req.metadata or {},
        }
        self._log("payment_initiate_request", operator=req.operator_id, amount=req.amount, order_reference=req.order_reference)
        try:
            data = await self.request("POST", "payments/initiate", json=body, retry_on=(httpx.ConnectError,))
        except APIError as exc:
            if isinstance(exc, RetryableAPIError) or exc.status_code is None:
                raise self._translate_error(exc, action="initiate") from exc
            # 4xx is the provider's verdict on this payment, not a transport failure
            self._log("payment_initiate_rejected", status_code=exc.status_code, error=exc.message)
            return PaymentInitiationResult(
                status="failed",
                provider=self.provider,
                error=exc.message,
                status_code=exc.status_code,
            )
        except httpx.HTTPError as exc:
            raise self._translate_error(exc, action="initiate") from exc

        data = data if isinstance(data, dict) else {}
        status = self._map_status(data.get("status"))
        result = PaymentInitiationResult(
            status="failed" if status == "canceled" else status,
            transaction_id=_transaction_id(data),
            provider=self.provider,
            error=data.get("error") or (data.get("message") if status != "succeeded" else None),
        )
        self._log("payment_initiate_response", status=result.status, transaction_id=result.transaction_id)
        return result

    async def get_status(self, transaction_id: str) -> TransactionStatus:
        try:
            data = await self.request("GET", f"payments/{transaction_id}/status")
        except (APIError, httpx.HTTPError) as exc:
            raise self._translate_error(exc, action="status") from exc
        data = data if isinstance(data, dict) else {}
        raw = data.get("status")
        return TransactionStatus(
            transaction_id=_transaction_id(data) or transaction_id,
            status=self._map_status(raw),
            provider=self.provider,
            raw_status=raw,
        )


def _transaction_id(data: dict[str, Any]) -> Optional[str]:
    for key in ("transactionId", "transaction_id", "_id", "id"):
        value = data.get(key)
        if value:
            return str(value)
    return None
