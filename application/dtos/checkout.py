"""
Checkout DTOs (Pydantic v2) used at application boundaries: starting a
checkout, the payload carried to terminal screens, and the session view
returned by the API.
"""
from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field

from application.dtos.notifications import NotificationResult
from domain.checkout.errors import ErrorKind, describe
from domain.checkout.session import CheckoutStep, OrderDraft, PaymentMethod, PaymentSession


class StartCheckout(BaseModel):
    order: OrderDraft
    amount: int = Field(ge=0)
    subtotal: int = Field(default=0, ge=0)
    fees: int = Field(default=0, ge=0)
    discount: int = Field(default=0, ge=0)
    order_reference: Optional[str] = None
    max_retries: Optional[int] = Field(default=None, ge=0)


class ErrorView(BaseModel):
    kind: ErrorKind
    title: str
    message: str
    suggestions: list[str]
    raw_error: Optional[str] = None

    @classmethod
    def for_kind(cls, kind: ErrorKind, raw_error: Optional[str] = None) -> "ErrorView":
        info = describe(kind)
        return cls(
            kind=kind,
            title=info.title,
            message=info.message,
            suggestions=list(info.suggestions),
            raw_error=raw_error,
        )


class TerminalPayload(BaseModel):
    session_id: str
    method: PaymentMethod
    amount: int
    order_reference: Optional[str] = None
    transaction_id: Optional[str] = None
    created_order_id: Optional[str] = None
    operator_id: Optional[str] = None
    phone_number: Optional[str] = None
    message: Optional[str] = None
    error: Optional[ErrorView] = None
    verified_status: Optional[str] = None
    # Set once verification reached a verdict; the next screen does not poll again
    verification_done: bool = False
    retry_count: int = 0
    can_retry: bool = False
    notifications: list[NotificationResult] = Field(default_factory=list)


class CheckoutView(BaseModel):
    session_id: str
    step: CheckoutStep
    method: PaymentMethod
    operator_id: Optional[str] = None
    phone_number: str = ""
    amount: int
    subtotal: int
    fees: int
    discount: int
    order_reference: Optional[str] = None
    transaction_id: Optional[str] = None
    order_created: bool
    created_order_id: Optional[str] = None
    retry_count: int
    max_retries: int
    can_confirm: bool
    actions: list[str]
    terminal: Optional[TerminalPayload] = None

    @classmethod
    def from_session(
        cls,
        session: PaymentSession,
        *,
        can_confirm: bool,
        actions: list[str],
        terminal: Optional[TerminalPayload] = None,
    ) -> "CheckoutView":
        return cls(
            session_id=session.session_id,
            step=session.step,
            method=session.method,
            operator_id=session.operator.id if session.operator else None,
            phone_number=session.phone_number,
            amount=session.amount,
            subtotal=session.subtotal,
            fees=session.fees,
            discount=session.discount,
            order_reference=session.order_reference,
            transaction_id=session.transaction_id,
            order_created=session.order_created,
            created_order_id=session.created_order_id,
            retry_count=session.retry_count,
            max_retries=session.max_retries,
            can_confirm=can_confirm,
            actions=actions,
            terminal=terminal,
        )
