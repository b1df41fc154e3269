"""
Checkout session aggregate - one attempted purchase.

Business rules:
1. Amounts are non-negative whole FCFA (no minor units).
2. The payment method is chosen once per attempt.
3. order_created flips false→true exactly once, together with created_order_id.
4. retry_count never exceeds max_retries.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from domain.checkout.errors import ErrorKind
from domain.checkout.operators import MobileMoneyOperator
from domain.common.exceptions import DomainValidationException, MethodAlreadySelectedException


class PaymentMethod(str, Enum):
    UNSET = "unset"
    WALLET_TRANSFER = "mobile_money"
    CASH_ON_DELIVERY = "cash_on_delivery"


class CheckoutStep(str, Enum):
    METHOD = "method"
    OPERATOR = "operator"
    DETAILS = "details"
    CONFIRMATION = "confirmation"
    PROCESSING = "processing"
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TerminalKind(str, Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"



@dataclass
class OrderItem:
    service_id: str
    name: str
    quantity: int
    unit_price: int
    instructions: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


@dataclass
class OrderDraft:
    """Everything the Order API needs, as collected before the payment page."""

    pressing_id: str
    pressing_name: str
    customer_name: str
    customer_phone: str
    services: list[OrderItem] = field(default_factory=list)
    delivery_address: str = ""
    requested_collection_at: Optional[str] = None
    special_instructions: Optional[str] = None
    pressing_address: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CashOnDeliveryInfo:
    customer_name: str = ""
    customer_phone: str = ""
    delivery_address: str = ""
    special_instructions: Optional[str] = None


@dataclass
class FailureRecord:
    kind: ErrorKind
    raw_error: str


@dataclass
class PaymentSession:
    draft: OrderDraft
    amount: int
    subtotal: int = 0
    fees: int = 0
    discount: int = 0
    max_retries: int = 3
    order_reference: Optional[str] = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    method: PaymentMethod = PaymentMethod.UNSET
    operator: Optional[MobileMoneyOperator] = None
    phone_number: str = ""
    cash_on_delivery: CashOnDeliveryInfo = field(default_factory=CashOnDeliveryInfo)
    step: CheckoutStep = CheckoutStep.METHOD
    retry_count: int = 0

    transaction_id: Optional[str] = None
    order_created: bool = False
    created_order_id: Optional[str] = None
    settling: bool = False
    method_locked: bool = False
    last_failure: Optional[FailureRecord] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        for name in ("amount", "subtotal", "fees", "discount"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise DomainValidationException(
                    f"{name} must be a non-negative whole FCFA amount: {value!r}",
                    field=name,
                )
        if self.max_retries < 0:
            raise DomainValidationException("max_retries must be >= 0", field="max_retries")
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)
        if not self.cash_on_delivery.customer_name:
            self.cash_on_delivery.customer_name = self.draft.customer_name
        if not self.cash_on_delivery.customer_phone:
            self.cash_on_delivery.customer_phone = self.draft.customer_phone
        if not self.cash_on_delivery.delivery_address:
            self.cash_on_delivery.delivery_address = self.draft.delivery_address

    # -------------------- derived state --------------------
    @property
    def can_retry(self) -> bool:
        return self.retry_count < self.max_retries and not self.order_created

    @property
    def can_settle(self) -> bool:
        return not self.settling and not self.order_created

    # -------------------- guarded mutations --------------------
    def choose_method(self, method: PaymentMethod) -> None:
        if method == PaymentMethod.UNSET:
            raise DomainValidationException("A payment method is required", field="method")
        if self.method_locked and method != self.method:
            raise MethodAlreadySelectedException(self.method.value)
        self.method = method
        if method == PaymentMethod.CASH_ON_DELIVERY:
            self.operator = None
            self.phone_number = ""

    def mark_order_created(self, order_id: str) -> None:
        """Write-once idempotency guard."""
        if self.order_created:
            raise DomainValidationException(
                "Order already created for this checkout",
                field="order_created",
                details={"created_order_id": self.created_order_id},
            )
        if not order_id:
            raise DomainValidationException("Order id is required", field="created_order_id")
        self.created_order_id = order_id
        self.order_created = True

    def record_failure(self, kind: ErrorKind, raw_error: str) -> None:
        self.last_failure = FailureRecord(kind=kind, raw_error=raw_error)

    def bump_retry(self) -> int:
        self.retry_count = min(self.retry_count + 1, self.max_retries)
        return self.retry_count

    def start_new_attempt(self) -> None:
        """Reset per-attempt input; amounts, draft, retry bookkeeping and the order guard survive."""
        self.method = PaymentMethod.UNSET
        self.operator = None
        self.phone_number = ""
        self.transaction_id = None
        self.method_locked = False
        self.step = CheckoutStep.METHOD
