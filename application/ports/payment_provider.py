"""
Payment provider port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.payments import PaymentInitiation, PaymentInitiationResult, TransactionStatus


@runtime_checkable
class PaymentProvider(Protocol):
    """Opaque mobile-money provider.

    `initiate` submits a transaction and reports the provider's immediate
    verdict; `get_status` returns the authoritative status of a transaction.
    """

    provider: str

    async def initiate(self, req: PaymentInitiation) -> PaymentInitiationResult: ...

    async def get_status(self, transaction_id: str) -> TransactionStatus: ...
