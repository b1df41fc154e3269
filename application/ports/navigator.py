"""Routing surface consumed by the checkout flow.

The concrete navigation mechanism (browser router, API polling, tests) lives
outside the application layer.
"""
from __future__ import annotations

from typing import Protocol

from application.dtos.checkout import TerminalPayload
from domain.checkout.session import CheckoutStep, TerminalKind


class Navigator(Protocol):
    def goto_step(self, step: CheckoutStep) -> None: ...

    def goto_terminal(self, kind: TerminalKind, payload: TerminalPayload) -> None: ...
