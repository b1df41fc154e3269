"""
Payment DTOs (Pydantic v2) used at the payment-provider boundary.
"""
from __future__ import annotations

from typing import Any, Optional, Literal
from pydantic import BaseModel, Field, field_validator

from domain.checkout.operators import normalize_phone_number

InitiationStatus = Literal["pending", "succeeded", "failed"]
VerificationStatus = Literal["pending", "succeeded", "failed", "canceled"]
PollOutcome = Literal["pending", "succeeded", "failed", "canceled", "timeout"]


class PaymentInitiation(BaseModel):
    operator_id: str
    operator_name: str
    phone_number: str
    amount: int = Field(gt=0)
    order_reference: str
    currency: str = Field(default="XOF")
    metadata: Optional[dict[str, Any]] = None

    @field_validator("phone_number")
    @classmethod
    def _digits_only(cls, v: str) -> str:
        digits = normalize_phone_number(v)
        if not digits:
            raise ValueError("phone_number must contain digits")
        return digits

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        u = (v or "").upper()
        if len(u) != 3 or not u.isalpha():
            raise ValueError("currency must be ISO-4217 alpha-3")
        return u


class PaymentInitiationResult(BaseModel):
    status: InitiationStatus
    transaction_id: Optional[str] = None
    provider: str = "mobile_money"
    # Raw provider error text, kept verbatim for classification
    error: Optional[str] = None
    status_code: Optional[int] = None


class TransactionStatus(BaseModel):
    transaction_id: str
    status: VerificationStatus
    provider: str = "mobile_money"
    raw_status: Optional[str] = None


class PollResult(BaseModel):
    """What the verification poller observed last and how many calls it took."""

    transaction_id: str
    outcome: PollOutcome
    calls: int
    elapsed: float = 0.0
