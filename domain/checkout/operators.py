"""Mobile-money operators accepted at checkout and phone-number rules."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from domain.common.exceptions import CheckoutValidationException

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class MobileMoneyOperator:
    """Operator descriptor: which numbers it accepts and how long they are."""

    id: str
    name: str
    display_name: str
    prefixes: tuple[str, ...]
    min_length: int = 10
    max_length: int = 10
    # Wave accepts numbers from every network, so its prefixes are informative only
    enforce_prefix: bool = True


OPERATORS: tuple[MobileMoneyOperator, ...] = (
    MobileMoneyOperator(
        id="orange",
        name="Orange Money",
        display_name="Orange Money",
        prefixes=("07", "08", "09"),
    ),
    MobileMoneyOperator(
        id="mtn",
        name="MTN Mobile Money",
        display_name="MTN MoMo",
        prefixes=("05", "06"),
    ),
    MobileMoneyOperator(
        id="moov",
        name="Moov Africa Money",
        display_name="Moov Money",
        prefixes=("01", "02", "03"),
    ),
    MobileMoneyOperator(
        id="wave",
        name="Wave",
        display_name="Wave",
        prefixes=("07", "08", "09", "05", "06", "01", "02", "03"),
        enforce_prefix=False,
    ),
)

_BY_ID = {op.id: op for op in OPERATORS}


def get_operator(operator_id: str) -> MobileMoneyOperator:
    op = _BY_ID.get((operator_id or "").strip().lower())
    if op is None:
        raise CheckoutValidationException(
            f"Unknown mobile money operator: {operator_id}",
            field="operator",
            details={"allowed": sorted(_BY_ID)},
            message_key="checkout.operator.unknown",
        )
    return op


def normalize_phone_number(raw: Optional[str]) -> str:
    """Keep digits only; separators typed by the customer are dropped."""
    return _NON_DIGITS.sub("", raw or "")


def phone_number_error(operator: Optional[MobileMoneyOperator], phone_number: str) -> Optional[str]:
    """Return a human readable reason the number is rejected, or None when it is valid."""
    if operator is None:
        return "Please select an operator first"
    digits = normalize_phone_number(phone_number)
    if not digits:
        return "Please enter a valid number"
    if len(digits) < operator.min_length:
        return f"The number must contain at least {operator.min_length} digits"
    if len(digits) > operator.max_length:
        return f"The number cannot exceed {operator.max_length} digits"
    if operator.enforce_prefix and digits[:2] not in operator.prefixes:
        return (
            f"Invalid number for {operator.display_name}. "
            f"Accepted prefixes: {', '.join(operator.prefixes)}"
        )
    return None
