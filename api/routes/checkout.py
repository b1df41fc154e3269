"""
Checkout API routes.

Thin HTTP surface over the payment flow controller: one session per id, one
endpoint per user action. Every action answers with the current CheckoutView
so a client can render the step and enable only the available actions.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_checkout_flow, get_checkout_registry, get_notification_dispatcher
from application.dtos.checkout import CheckoutView, StartCheckout
from application.services.checkout_registry import CheckoutRegistry
from application.services.checkout_service import PaymentFlowController
from application.services.notification_dispatcher import NotificationDispatcher
from core.i18n import t
from core.response import Response, success_response
from domain.checkout.operators import OPERATORS
from domain.checkout.session import CheckoutStep, PaymentMethod
from domain.common.exceptions import InvalidStepTransitionException, SettlementInProgressException


router = APIRouter(prefix="/checkout", tags=["Checkout"])


class SelectMethod(BaseModel):
    method: PaymentMethod


class SelectOperator(BaseModel):
    operator_id: str = Field(min_length=1)


class EnterPhone(BaseModel):
    phone_number: str


class DeliveryInfo(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None


class OperatorView(BaseModel):
    id: str
    name: str
    display_name: str
    prefixes: list[str]
    min_length: int
    max_length: int


def _ok(flow: PaymentFlowController) -> Response[CheckoutView]:
    return success_response(data=flow.view(), message=t("checkout.ok", default="Success"))


@router.get("/operators", response_model=Response[list[OperatorView]])
async def list_operators():
    data = [
        OperatorView(
            id=op.id,
            name=op.name,
            display_name=op.display_name,
            prefixes=list(op.prefixes),
            min_length=op.min_length,
            max_length=op.max_length,
        )
        for op in OPERATORS
    ]
    return success_response(data=data)


@router.get("/notifications/health", response_model=Response[dict[str, bool]])
async def notification_health(dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)):
    return success_response(data=await dispatcher.check_channels())


@router.post("/sessions", response_model=Response[CheckoutView], status_code=201)
async def start_checkout(payload: StartCheckout, registry: CheckoutRegistry = Depends(get_checkout_registry)):
    flow = await registry.start(payload)
    return _ok(flow)


@router.post("/sessions/{session_id}/restore", response_model=Response[CheckoutView])
async def restore_checkout(session_id: str, registry: CheckoutRegistry = Depends(get_checkout_registry)):
    flow = await registry.restore(session_id)
    return _ok(flow)


@router.get("/sessions/{session_id}", response_model=Response[CheckoutView])
async def get_checkout(flow: PaymentFlowController = Depends(get_checkout_flow)):
    return _ok(flow)


@router.post("/sessions/{session_id}/method", response_model=Response[CheckoutView])
async def select_method(body: SelectMethod, flow: PaymentFlowController = Depends(get_checkout_flow)):
    flow.select_method(body.method)
    return _ok(flow)


@router.post("/sessions/{session_id}/operator", response_model=Response[CheckoutView])
async def select_operator(body: SelectOperator, flow: PaymentFlowController = Depends(get_checkout_flow)):
    flow.select_operator(body.operator_id)
    return _ok(flow)


@router.post("/sessions/{session_id}/phone", response_model=Response[CheckoutView])
async def enter_phone(body: EnterPhone, flow: PaymentFlowController = Depends(get_checkout_flow)):
    flow.enter_phone_number(body.phone_number)
    return _ok(flow)


@router.post("/sessions/{session_id}/delivery", response_model=Response[CheckoutView])
async def update_delivery(body: DeliveryInfo, flow: PaymentFlowController = Depends(get_checkout_flow)):
    flow.update_delivery_info(**body.model_dump(exclude_unset=True))
    return _ok(flow)


@router.post("/sessions/{session_id}/next", response_model=Response[CheckoutView])
async def next_step(flow: PaymentFlowController = Depends(get_checkout_flow)):
    await flow.next()
    return _ok(flow)


@router.post("/sessions/{session_id}/previous", response_model=Response[CheckoutView])
async def previous_step(flow: PaymentFlowController = Depends(get_checkout_flow)):
    flow.previous()
    return _ok(flow)


@router.post("/sessions/{session_id}/confirm", response_model=Response[CheckoutView])
async def confirm(flow: PaymentFlowController = Depends(get_checkout_flow)):
    if not flow.can_confirm():
        session = flow.session
        if session.step not in (CheckoutStep.CONFIRMATION, CheckoutStep.PROCESSING) and not session.order_created:
            raise InvalidStepTransitionException("confirm", session.step.value)
        raise SettlementInProgressException(
            order_created=session.order_created,
            created_order_id=session.created_order_id,
        )
    await flow.confirm()
    return _ok(flow)


@router.post("/sessions/{session_id}/retry", response_model=Response[CheckoutView])
async def retry(flow: PaymentFlowController = Depends(get_checkout_flow)):
    await flow.retry()
    return _ok(flow)


@router.post("/sessions/{session_id}/change-method", response_model=Response[CheckoutView])
async def change_method(flow: PaymentFlowController = Depends(get_checkout_flow)):
    await flow.change_method()
    return _ok(flow)


@router.post("/sessions/{session_id}/cancel", response_model=Response[CheckoutView])
async def cancel(session_id: str, registry: CheckoutRegistry = Depends(get_checkout_registry)):
    flow = registry.get(session_id)
    await flow.cancel()
    view = flow.view()
    await registry.discard(session_id)
    return success_response(data=view)
