"""
Payment failure taxonomy and the classifier mapping raw provider errors onto it.

`classify` is deterministic: the first keyword group that matches wins, in
declaration order, and anything unrecognised falls back to NETWORK_ERROR.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_NUMBER = "invalid_number"
    TRANSACTION_DECLINED = "transaction_declined"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    # Structural failure of the Order API, never produced by classify()
    ORDER_CREATION_FAILED = "order_creation_failed"


@dataclass(frozen=True)
class ErrorInfo:
    kind: ErrorKind
    title: str
    message: str
    suggestions: tuple[str, ...]


# Matched against the lower-cased raw error; providers answer in French or English.
_KEYWORDS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.INSUFFICIENT_FUNDS, ("insufficient", "solde")),
    (ErrorKind.INVALID_NUMBER, ("invalid", "numéro", "numero")),
    (ErrorKind.TRANSACTION_DECLINED, ("declined", "refus", "rejected")),
    (ErrorKind.NETWORK_ERROR, ("network", "connexion", "connection")),
    (ErrorKind.TIMEOUT, ("timeout", "timed out", "délai", "delai", "expir")),
)

_HTTP_STATUS_KINDS = {
    402: ErrorKind.INSUFFICIENT_FUNDS,
    403: ErrorKind.TRANSACTION_DECLINED,
    408: ErrorKind.TIMEOUT,
    504: ErrorKind.TIMEOUT,
}

ERROR_CATALOG: dict[ErrorKind, ErrorInfo] = {
    ErrorKind.INSUFFICIENT_FUNDS: ErrorInfo(
        kind=ErrorKind.INSUFFICIENT_FUNDS,
        title="Insufficient balance",
        message="Your mobile money account does not have enough balance for this transaction.",
        suggestions=(
            "Top up your mobile money account",
            "Use another account with enough balance",
            "Reduce the amount of your order",
        ),
    ),
    ErrorKind.INVALID_NUMBER: ErrorInfo(
        kind=ErrorKind.INVALID_NUMBER,
        title="Invalid number",
        message="The mobile money number entered is not valid or not activated.",
        suggestions=(
            "Check that your number is correct",
            "Make sure your mobile money account is activated",
            "Contact your operator if the problem persists",
        ),
    ),
    ErrorKind.TRANSACTION_DECLINED: ErrorInfo(
        kind=ErrorKind.TRANSACTION_DECLINED,
        title="Transaction declined",
        message="Your mobile money operator declined the transaction.",
        suggestions=(
            "Check the limits of your account",
            "Contact your operator to unblock your account",
            "Try another mobile money account",
        ),
    ),
    ErrorKind.NETWORK_ERROR: ErrorInfo(
        kind=ErrorKind.NETWORK_ERROR,
        title="Connection problem",
        message="A connection error occurred while processing your payment.",
        suggestions=(
            "Check your internet connection",
            "Try again in a few minutes",
            "Contact support if the problem persists",
        ),
    ),
    ErrorKind.TIMEOUT: ErrorInfo(
        kind=ErrorKind.TIMEOUT,
        title="Time limit exceeded",
        message="The transaction took too long and was cancelled.",
        suggestions=(
            "Try again right away",
            "Check your internet connection",
            "Use another operator if available",
        ),
    ),
    ErrorKind.ORDER_CREATION_FAILED: ErrorInfo(
        kind=ErrorKind.ORDER_CREATION_FAILED,
        title="Order not created",
        message="Your order could not be registered with the pressing.",
        suggestions=(
            "Try again in a few minutes",
            "Contact support with your transaction reference if you were charged",
        ),
    ),
}


def classify(raw_error: Optional[str]) -> ErrorKind:
    text = (raw_error or "").lower()
    for kind, keywords in _KEYWORDS:
        if any(k in text for k in keywords):
            return kind
    return ErrorKind.NETWORK_ERROR


def classify_http_status(status_code: Optional[int], raw_error: Optional[str] = None) -> ErrorKind:
    """Prefer the HTTP status when it is conclusive, otherwise fall back to the text."""
    if status_code is not None and status_code in _HTTP_STATUS_KINDS:
        return _HTTP_STATUS_KINDS[status_code]
    return classify(raw_error)


def describe(kind: ErrorKind) -> ErrorInfo:
    return ERROR_CATALOG[kind]
