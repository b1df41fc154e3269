"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        message_key: Optional[str] = None,
        format_params: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.message_key = message_key
        self.format_params = format_params
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        message_key: str | None = None,
        format_params: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
            message_key=message_key or "validation.domain",
            format_params=format_params,
        )


class CheckoutValidationException(DomainValidationException):
    """Field-level validation failure that blocks a step transition."""


class CheckoutNotFoundException(BusinessException):
    def __init__(self, session_id: Optional[str] = None):
        details = {"session_id": session_id} if session_id else None
        super().__init__(
            code=BusinessCode.CHECKOUT_NOT_FOUND,
            message="Checkout session not found",
            error_type="CheckoutNotFound",
            details=details,
            message_key="checkout.not_found",
        )


class InvalidStepTransitionException(BusinessException):
    def __init__(self, action: str, step: str):
        super().__init__(
            code=BusinessCode.INVALID_STEP_TRANSITION,
            message=f"Action '{action}' is not allowed from step '{step}'",
            error_type="InvalidStepTransition",
            details={"action": action, "step": step},
            message_key="checkout.step.invalid_transition",
            format_params={"action": action, "step": step},
        )


class MethodAlreadySelectedException(BusinessException):
    def __init__(self, method: str):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message="Payment method already chosen for this attempt",
            error_type="MethodAlreadySelected",
            details={"method": method},
            field="method",
            message_key="checkout.method.locked",
        )


class SettlementInProgressException(BusinessException):
    def __init__(self, *, order_created: bool = False, created_order_id: Optional[str] = None):
        super().__init__(
            code=BusinessCode.SETTLEMENT_IN_PROGRESS,
            message="An order is already being processed for this checkout",
            error_type="SettlementInProgress",
            details={"order_created": order_created, "created_order_id": created_order_id},
            message_key="checkout.settlement.in_progress",
        )


class RetryLimitReachedException(BusinessException):
    def __init__(self, retry_count: int, max_retries: int):
        super().__init__(
            code=BusinessCode.RETRY_LIMIT_REACHED,
            message="Retry limit reached",
            error_type="RetryLimitReached",
            details={"retry_count": retry_count, "max_retries": max_retries},
            message_key="checkout.retry.limit_reached",
            format_params={"max_retries": max_retries},
        )
