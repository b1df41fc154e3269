"""
Payment flow controller: the checkout step state machine and settlement.

The controller is the only writer of its PaymentSession. Collecting steps
(method → operator → details → confirmation) are pure local validation;
confirming runs the settlement procedure (payment, order creation exactly
once, notifications) and routes to a terminal screen. Collaborators are
injected from the composition root (API/tests).
"""
from __future__ import annotations

import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from application.dtos.checkout import CheckoutView, ErrorView, TerminalPayload
from application.dtos.notifications import NotificationResult
from application.dtos.payments import PaymentInitiation
from application.ports.draft_store import DraftStore
from application.ports.navigator import Navigator
from application.ports.order_api import OrderApi
from application.ports.payment_provider import PaymentProvider
from application.services.notification_dispatcher import NotificationDispatcher, notification_request_for
from application.services.terminal_screens import TerminalScreen, TerminalScreenFactory
from core.logging_config import get_logger
from domain.checkout.errors import ErrorKind, classify_http_status
from domain.checkout.operators import MobileMoneyOperator, get_operator, normalize_phone_number, phone_number_error
from domain.checkout.session import (
    CheckoutStep,
    PaymentMethod,
    PaymentSession,
    TerminalKind,
)
from domain.common.exceptions import (
    CheckoutValidationException,
    InvalidStepTransitionException,
    RetryLimitReachedException,
)


logger = get_logger(__name__)

FinishedHandler = Callable[["PaymentFlowController"], Awaitable[None]]

SUCCESS_MESSAGES = {
    PaymentMethod.CASH_ON_DELIVERY: "Order confirmed! You will pay on delivery.",
    PaymentMethod.WALLET_TRANSFER: "Payment successful! Your order has been confirmed.",
}

_last_reference_ms = 0


def generate_order_reference() -> str:
    """GEO-xxxxxx from a millisecond timestamp that never goes backwards in-process."""
    global _last_reference_ms
    now = int(time.time() * 1000)
    _last_reference_ms = max(now, _last_reference_ms + 1)
    return f"GEO-{str(_last_reference_ms)[-6:]}"


class _SettlementFailed(Exception):
    def __init__(self, kind: ErrorKind, raw_error: str) -> None:
        super().__init__(raw_error)
        self.kind = kind
        self.raw_error = raw_error


class PaymentFlowController:
    def __init__(
        self,
        session: PaymentSession,
        *,
        provider: PaymentProvider,
        orders: OrderApi,
        dispatcher: NotificationDispatcher,
        navigator: Navigator,
        screens: Optional[TerminalScreenFactory] = None,
        drafts: Optional[DraftStore] = None,
        currency: str = "XOF",
        on_finished: Optional[FinishedHandler] = None,
    ) -> None:
        self.session = session
        self._provider = provider
        self._orders = orders
        self._dispatcher = dispatcher
        self._navigator = navigator
        self._screens = screens
        self._drafts = drafts
        self._currency = currency
        self._on_finished = on_finished
        self._screen: Optional[TerminalScreen] = None
        self.terminal_payload: Optional[TerminalPayload] = None

    # -------------------- queries --------------------
    @property
    def screen(self) -> Optional[TerminalScreen]:
        return self._screen

    def view(self) -> CheckoutView:
        terminal = self._screen.payload if self._screen is not None else self.terminal_payload
        return CheckoutView.from_session(
            self.session,
            can_confirm=self.can_confirm(),
            actions=self.available_actions(),
            terminal=terminal,
        )

    def can_confirm(self) -> bool:
        return self.session.step == CheckoutStep.CONFIRMATION and self.session.can_settle

    def available_actions(self) -> list[str]:
        s = self.session
        actions: list[str] = []
        if s.step in (CheckoutStep.METHOD, CheckoutStep.OPERATOR, CheckoutStep.DETAILS):
            actions.append("next")
        if s.step in (CheckoutStep.OPERATOR, CheckoutStep.DETAILS, CheckoutStep.CONFIRMATION):
            actions.append("previous")
        if self.can_confirm():
            actions.append("confirm")
        if s.step == CheckoutStep.FAILED:
            if s.can_retry:
                actions.append("retry")
            actions.append("change_method")
        if s.step not in (CheckoutStep.PROCESSING, CheckoutStep.CANCELLED):
            actions.append("cancel")
        return actions

    # -------------------- collecting steps --------------------
    def select_method(self, method: Union[PaymentMethod, str]) -> None:
        self._require_step("select_method", CheckoutStep.METHOD)
        self.session.choose_method(PaymentMethod(method))
        logger.info("checkout_method_selected", session_id=self.session.session_id, method=self.session.method.value)

    def select_operator(self, operator: Union[MobileMoneyOperator, str]) -> None:
        self._require_step("select_operator", CheckoutStep.OPERATOR)
        op = operator if isinstance(operator, MobileMoneyOperator) else get_operator(operator)
        if self.session.operator != op:
            # A number typed for another operator is meaningless now
            self.session.phone_number = ""
        self.session.operator = op
        logger.info("checkout_operator_selected", session_id=self.session.session_id, operator=op.id)

    def enter_phone_number(self, raw: str) -> None:
        self._require_step("enter_phone_number", CheckoutStep.DETAILS)
        self.session.phone_number = normalize_phone_number(raw)

    def update_delivery_info(
        self,
        *,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        delivery_address: Optional[str] = None,
        special_instructions: Optional[str] = None,
    ) -> None:
        if self.session.step not in (CheckoutStep.METHOD, CheckoutStep.CONFIRMATION):
            raise InvalidStepTransitionException("update_delivery_info", self.session.step.value)
        info = self.session.cash_on_delivery
        if customer_name is not None:
            info.customer_name = customer_name
        if customer_phone is not None:
            info.customer_phone = normalize_phone_number(customer_phone)
        if delivery_address is not None:
            info.delivery_address = delivery_address
        if special_instructions is not None:
            info.special_instructions = special_instructions

    async def next(self) -> CheckoutStep:
        s = self.session
        if s.step == CheckoutStep.METHOD:
            if s.method == PaymentMethod.WALLET_TRANSFER:
                if s.amount <= 0:
                    # A free order can only be settled on delivery
                    raise CheckoutValidationException(
                        "Mobile money payments need an amount above 0 FCFA",
                        field="amount",
                        details={"amount": s.amount},
                        message_key="checkout.amount.invalid",
                    )
                target = CheckoutStep.OPERATOR
            elif s.method == PaymentMethod.CASH_ON_DELIVERY:
                target = CheckoutStep.CONFIRMATION
            else:
                raise CheckoutValidationException(
                    "Please choose a payment method",
                    field="method",
                    message_key="checkout.method.required",
                )
            s.method_locked = True
        elif s.step == CheckoutStep.OPERATOR:
            if s.operator is None:
                raise CheckoutValidationException(
                    "Please select an operator",
                    field="operator",
                    message_key="checkout.operator.required",
                )
            target = CheckoutStep.DETAILS
        elif s.step == CheckoutStep.DETAILS:
            reason = phone_number_error(s.operator, s.phone_number)
            if reason:
                raise CheckoutValidationException(
                    reason,
                    field="phone_number",
                    details={"operator": s.operator.id if s.operator else None},
                    message_key="checkout.phone.invalid",
                )
            target = CheckoutStep.CONFIRMATION
        elif s.step == CheckoutStep.CONFIRMATION:
            await self.confirm()
            return s.step
        else:
            raise InvalidStepTransitionException("next", s.step.value)
        self._goto(target)
        return target

    def previous(self) -> CheckoutStep:
        s = self.session
        if s.step == CheckoutStep.OPERATOR:
            target = CheckoutStep.METHOD
        elif s.step == CheckoutStep.DETAILS:
            target = CheckoutStep.OPERATOR
        elif s.step == CheckoutStep.CONFIRMATION:
            target = CheckoutStep.DETAILS if s.method == PaymentMethod.WALLET_TRANSFER else CheckoutStep.METHOD
        else:
            raise InvalidStepTransitionException("previous", s.step.value)
        if target == CheckoutStep.METHOD:
            # Back on the method step the choice is open again
            s.method_locked = False
        self._goto(target)
        return target

    # -------------------- failed terminal actions --------------------
    async def retry(self) -> None:
        s = self.session
        self._require_step("retry", CheckoutStep.FAILED)
        if not s.can_retry:
            raise RetryLimitReachedException(s.retry_count, s.max_retries)
        s.bump_retry()
        logger.info("checkout_retry", session_id=s.session_id, retry_count=s.retry_count, max_retries=s.max_retries)
        await self._restart()

    async def change_method(self) -> None:
        self._require_step("change_method", CheckoutStep.FAILED)
        logger.info("checkout_change_method", session_id=self.session.session_id)
        await self._restart()

    async def cancel(self) -> None:
        s = self.session
        if s.settling or s.step in (CheckoutStep.PROCESSING, CheckoutStep.CANCELLED):
            raise InvalidStepTransitionException("cancel", s.step.value)
        await self.teardown()
        if self._drafts is not None:
            await self._drafts.discard(s.session_id)
        s.step = CheckoutStep.CANCELLED
        self._navigator.goto_step(CheckoutStep.CANCELLED)
        logger.info("checkout_cancelled", session_id=s.session_id)

    async def teardown(self) -> None:
        """Unmount the active terminal screen; no poller survives this call."""
        screen, self._screen = self._screen, None
        if screen is not None:
            self.terminal_payload = screen.payload
            await screen.unmount()

    # -------------------- settlement --------------------
    async def confirm(self) -> Optional[TerminalKind]:
        """Run settlement once; duplicate triggers return None without side effects."""
        s = self.session
        if not s.can_settle:
            logger.warning(
                "settlement_duplicate_blocked",
                session_id=s.session_id,
                settling=s.settling,
                order_created=s.order_created,
                created_order_id=s.created_order_id,
            )
            return None
        self._require_step("confirm", CheckoutStep.CONFIRMATION)
        # Set before the first suspension point
        s.settling = True
        try:
            self._goto(CheckoutStep.PROCESSING)
            return await self._settle()
        finally:
            s.settling = False

    async def _settle(self) -> TerminalKind:
        s = self.session
        s.order_reference = s.order_reference or generate_order_reference()
        logger.info(
            "settlement_started",
            session_id=s.session_id,
            method=s.method.value,
            amount=s.amount,
            order_reference=s.order_reference,
        )
        try:
            payment_status = await self._collect_payment()
            order_id, reference = await self._create_order(payment_status)
        except _SettlementFailed as failure:
            return await self._fail(failure.kind, failure.raw_error)
        await self._complete(order_id, reference)
        return TerminalKind.SUCCESS

    async def _complete(self, order_id: str, reference: str, **extra) -> None:
        s = self.session
        notifications = await self._notify(order_id, reference)
        payload = self._payload(
            message=SUCCESS_MESSAGES[s.method],
            notifications=notifications,
            **extra,
        )
        logger.info(
            "settlement_succeeded",
            session_id=s.session_id,
            created_order_id=order_id,
            transaction_id=s.transaction_id,
        )
        await self._enter_terminal(TerminalKind.SUCCESS, payload)

    async def _collect_payment(self) -> str:
        s = self.session
        if s.method == PaymentMethod.CASH_ON_DELIVERY:
            # Paid at the door: nothing to submit to the provider
            return "pending"
        if s.method != PaymentMethod.WALLET_TRANSFER or s.operator is None:
            raise _SettlementFailed(ErrorKind.NETWORK_ERROR, "Invalid payment method")

        try:
            req = PaymentInitiation(
                operator_id=s.operator.id,
                operator_name=s.operator.name,
                phone_number=s.phone_number,
                amount=s.amount,
                order_reference=s.order_reference,
                currency=self._currency,
            )
            result = await self._provider.initiate(req)
        except Exception as exc:
            status_code = getattr(exc, "status_code", None)
            logger.error("payment_initiation_error", session_id=s.session_id, error=str(exc), status_code=status_code)
            raise _SettlementFailed(classify_http_status(status_code, str(exc)), str(exc)) from exc

        if result.transaction_id:
            s.transaction_id = result.transaction_id
        if result.status != "succeeded":
            raw = result.error or f"Mobile money payment {result.status}"
            logger.warning(
                "payment_not_succeeded",
                session_id=s.session_id,
                status=result.status,
                transaction_id=result.transaction_id,
                error=raw,
            )
            raise _SettlementFailed(classify_http_status(result.status_code, raw), raw)
        logger.info("payment_succeeded", session_id=s.session_id, transaction_id=s.transaction_id)
        return "succeeded"

    async def _create_order(self, payment_status: str) -> tuple[str, str]:
        s = self.session
        draft = self._order_payload(payment_status)
        paid = payment_status == "succeeded"
        try:
            created = await self._orders.create(draft)
        except Exception as exc:
            logger.error(
                "order_creation_failed",
                session_id=s.session_id,
                error=str(exc),
                transaction_id=s.transaction_id,
                paid_without_order=paid,
            )
            raise _SettlementFailed(ErrorKind.ORDER_CREATION_FAILED, str(exc)) from exc
        if created is None or not created.id:
            logger.error("order_creation_empty_response", session_id=s.session_id, paid_without_order=paid)
            raise _SettlementFailed(ErrorKind.ORDER_CREATION_FAILED, "Order API returned no order id")

        s.mark_order_created(created.id)
        reference = created.reference or s.order_reference
        logger.info("order_created", session_id=s.session_id, created_order_id=created.id, reference=reference)
        return created.id, reference

    async def _notify(self, order_id: str, reference: str) -> list[NotificationResult]:
        request = notification_request_for(self.session, order_id=order_id, order_reference=reference)
        try:
            return await self._dispatcher.dispatch(request)
        except Exception as exc:
            # Settlement never fails because of notifications
            logger.error("notification_dispatch_crashed", session_id=self.session.session_id, error=str(exc))
            return []

    def _order_payload(self, payment_status: str) -> dict[str, Any]:
        s = self.session
        draft = s.draft
        is_cash = s.method == PaymentMethod.CASH_ON_DELIVERY
        validated_at = datetime.now(timezone.utc).isoformat()

        payment: dict[str, Any] = {
            "method": "cash" if is_cash else "mobile_money",
            "status": "completed" if payment_status == "succeeded" else "pending",
            "amount": {
                "subtotal": s.subtotal,
                "delivery": s.fees,
                "discount": s.discount,
                "total": s.amount,
                "currency": self._currency,
            },
        }
        if s.transaction_id:
            payment["transaction_id"] = s.transaction_id
        if s.operator is not None:
            payment["provider"] = s.operator.name
        if s.phone_number:
            payment["phone_number"] = s.phone_number

        customer: dict[str, Any] = {"name": draft.customer_name, "phone": draft.customer_phone}
        if is_cash:
            customer["delivery_info"] = asdict(s.cash_on_delivery)

        validation: dict[str, Any] = {"method": s.method.value, "validated_at": validated_at}
        if s.transaction_id:
            validation["transaction_id"] = s.transaction_id

        return {
            "pressing_id": draft.pressing_id,
            "pressing_name": draft.pressing_name,
            "pressing_address": draft.pressing_address,
            "services": [asdict(item) for item in draft.services],
            "delivery_address": draft.delivery_address,
            "requested_collection_at": draft.requested_collection_at,
            "special_instructions": draft.special_instructions,
            "payment": payment,
            "customer_info": customer,
            "order_reference": s.order_reference,
            "status": "confirmed",
            "metadata": {
                **(draft.metadata or {}),
                "payment_validation": validation,
                "order_flow": {"created_via": "payment_validation", "final_validation_step": "payment"},
            },
        }

    async def _fail(self, kind: ErrorKind, raw_error: str) -> TerminalKind:
        s = self.session
        s.record_failure(kind, raw_error)
        logger.warning(
            "settlement_failed",
            session_id=s.session_id,
            error_kind=kind.value,
            error=raw_error,
            order_created=s.order_created,
        )
        payload = self._payload(
            error=ErrorView.for_kind(kind, raw_error),
            # Verifying the payment cannot undo a refused order
            verification_done=kind == ErrorKind.ORDER_CREATION_FAILED,
        )
        await self._enter_terminal(TerminalKind.FAILED, payload)
        return TerminalKind.FAILED

    # -------------------- routing --------------------
    def _payload(self, **extra) -> TerminalPayload:
        s = self.session
        return TerminalPayload(
            session_id=s.session_id,
            method=s.method,
            amount=s.amount,
            order_reference=s.order_reference,
            transaction_id=s.transaction_id,
            created_order_id=s.created_order_id,
            operator_id=s.operator.id if s.operator else None,
            phone_number=s.phone_number or None,
            retry_count=s.retry_count,
            can_retry=s.can_retry,
            **extra,
        )

    async def _enter_terminal(self, kind: TerminalKind, payload: TerminalPayload) -> None:
        await self.teardown()
        s = self.session
        s.step = CheckoutStep(kind.value)
        self.terminal_payload = payload
        self._navigator.goto_terminal(kind, payload)
        if kind == TerminalKind.SUCCESS and self._drafts is not None:
            await self._drafts.discard(s.session_id)
        if self._screens is not None:
            screen = self._screens.build(kind, payload, self._reroute, on_verified=self._screen_verified)
            self._screen = screen
            screen.mount()
        if kind == TerminalKind.SUCCESS and not (self._screen is not None and self._screen.polling):
            await self._finish()

    async def _reroute(self, kind: TerminalKind, payload: TerminalPayload) -> None:
        """Route requested by a terminal screen after verification."""
        s = self.session
        if kind == TerminalKind.SUCCESS and not s.order_created:
            await self._settle_verified(payload)
            return
        if kind == TerminalKind.FAILED and payload.error is not None:
            s.record_failure(payload.error.kind, payload.error.raw_error or "")
        payload = payload.model_copy(update={"retry_count": s.retry_count, "can_retry": s.can_retry})
        logger.info(
            "verification_reroute",
            session_id=s.session_id,
            from_step=s.step.value,
            to=kind.value,
            verified_status=payload.verified_status,
        )
        await self._enter_terminal(kind, payload)

    async def _settle_verified(self, payload: TerminalPayload) -> None:
        """
        The provider confirmed a payment that settlement had given up on.

        The success terminal is only entered with an order, so the order is
        created now. When the Order API already refused this attempt the flow
        stays on its current screen with the verified status recorded.
        """
        s = self.session
        failure = s.last_failure
        if s.settling or (failure is not None and failure.kind == ErrorKind.ORDER_CREATION_FAILED):
            logger.error(
                "verified_payment_without_order",
                session_id=s.session_id,
                transaction_id=s.transaction_id,
                paid_without_order=True,
            )
            if self._screen is not None:
                self._screen.payload = self._screen.payload.model_copy(
                    update={"verified_status": payload.verified_status, "verification_done": True}
                )
            return

        logger.info("settlement_resumed", session_id=s.session_id, transaction_id=s.transaction_id)
        s.settling = True
        try:
            self._goto(CheckoutStep.PROCESSING)
            try:
                order_id, reference = await self._create_order("succeeded")
            except _SettlementFailed as failure:
                await self._fail(failure.kind, failure.raw_error)
                return
            await self._complete(
                order_id,
                reference,
                verified_status=payload.verified_status,
                verification_done=True,
            )
        finally:
            s.settling = False

    async def _screen_verified(self, screen: TerminalScreen) -> None:
        if screen is self._screen and screen.kind == TerminalKind.SUCCESS:
            await self._finish()

    async def _finish(self) -> None:
        # Success with nothing left to verify
        s = self.session
        logger.info("checkout_finished", session_id=s.session_id, created_order_id=s.created_order_id)
        if self._on_finished is not None:
            await self._on_finished(self)

    def _goto(self, step: CheckoutStep) -> None:
        self.session.step = step
        self._navigator.goto_step(step)

    async def _restart(self) -> None:
        await self.teardown()
        self.session.start_new_attempt()
        self.terminal_payload = None
        self._navigator.goto_step(CheckoutStep.METHOD)

    def _require_step(self, action: str, step: CheckoutStep) -> None:
        if self.session.step != step:
            raise InvalidStepTransitionException(action, self.session.step.value)
