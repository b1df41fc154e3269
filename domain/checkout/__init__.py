"""Checkout domain exports."""
from .errors import ErrorInfo, ErrorKind, classify, classify_http_status, describe
from .operators import OPERATORS, MobileMoneyOperator, get_operator, normalize_phone_number, phone_number_error
from .session import (
    CashOnDeliveryInfo,
    CheckoutStep,
    OrderDraft,
    OrderItem,
    PaymentMethod,
    PaymentSession,
    TerminalKind,
)

__all__ = [
    "ErrorInfo",
    "ErrorKind",
    "classify",
    "classify_http_status",
    "describe",
    "OPERATORS",
    "MobileMoneyOperator",
    "get_operator",
    "normalize_phone_number",
    "phone_number_error",
    "CashOnDeliveryInfo",
    "CheckoutStep",
    "OrderDraft",
    "OrderItem",
    "PaymentMethod",
    "PaymentSession",
    "TerminalKind",
]
