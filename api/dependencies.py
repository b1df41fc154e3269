"""
API依赖项 - 从应用状态取出 checkout 组件
"""
from fastapi import Depends, Request

from application.services.checkout_registry import CheckoutRegistry
from application.services.checkout_service import PaymentFlowController
from application.services.notification_dispatcher import NotificationDispatcher


def get_checkout_registry(request: Request) -> CheckoutRegistry:
    return request.app.state.checkout_registry


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.notification_dispatcher


async def get_checkout_flow(
    session_id: str,
    registry: CheckoutRegistry = Depends(get_checkout_registry),
) -> PaymentFlowController:
    """Live flow for the path's session id; raises CheckoutNotFoundException."""
    return registry.get(session_id)
