"""
Exceptions for payment providers mapped to unified BusinessException variants.

`status_code` carries the provider's HTTP status when there was one, so the
checkout flow can classify 402/403 answers.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


def _details(provider: str, provider_code: Optional[str], status_code: Optional[int], extra: Optional[dict]) -> dict:
    full_details = {"provider": provider, "provider_code": provider_code, "status_code": status_code}
    if extra:
        full_details.update(extra)
    return full_details


class PaymentProviderError(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        provider: str,
        provider_code: str | None = None,
        status_code: int | None = None,
        details: Optional[dict] = None,
    ):
        self.status_code = status_code
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="PaymentProviderError",
            details=_details(provider, provider_code, status_code, details),
        )


class PaymentRecoverableError(BusinessException):
    """Network-level failure talking to the provider; the payment may be retried by the user."""

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        self.status_code = None
        super().__init__(
            code=PaymentCode.PROVIDER_RECOVERABLE,
            message=message,
            error_type="PaymentRecoverableError",
            details=_details(provider, provider_code, None, details),
        )


class PaymentTimeoutError(BusinessException):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        self.status_code = None
        super().__init__(
            code=PaymentCode.TIMEOUT,
            message=message,
            error_type="PaymentTimeoutError",
            details=_details(provider, None, None, details),
        )
